#!/usr/bin/env python3
"""Print a worker's stage timeline and check its derived state."""

import asyncio
import sys
from app.database import Database
from app.models.stage import derive_status, first_incomplete_stage
from bson import ObjectId

async def check_worker(passport_number: str = None):
    """Show the worker with the given passport number, or the latest one."""
    await Database.connect()

    if passport_number:
        worker = await Database.db.workers.find_one({"passport_number": passport_number})
    else:
        worker = await Database.db.workers.find_one({}, sort=[("created_at", -1)])

    if not worker:
        print("❌ No worker found")
        await Database.disconnect()
        return

    print(f"📋 Worker: {worker['_id']}")
    print(f"   Name: {worker.get('name')}")
    print(f"   Status: {worker.get('status')}")
    print(f"   Current Stage: {worker.get('current_stage')}")
    print(f"   Version: {worker.get('version')}")

    timeline = worker.get("stage_timeline", [])
    print(f"\n📝 Timeline ({len(timeline)} stages):")
    for entry in timeline:
        note = f" | {entry['notes']}" if entry.get("notes") else ""
        print(f"   - {entry['stage']:<28} {entry['status']:<11} {entry.get('date')}{note}")

    expected_status = derive_status(timeline).value
    expected_stage = first_incomplete_stage(timeline) or "deployed"
    if worker.get("status") != expected_status:
        print(f"\n❌ Stored status {worker.get('status')!r} but timeline says {expected_status!r}")
    else:
        print("\n✅ Status matches timeline")
    if worker.get("current_stage") != expected_stage:
        print(f"⚠️  Current stage {worker.get('current_stage')!r}, first incomplete is {expected_stage!r}")

    documents = worker.get("documents", [])
    print(f"\n📎 Documents ({len(documents)}):")
    for doc in documents:
        print(f"   - {doc.get('name')} [{doc.get('category')}] {doc.get('status')}")

    demand_id = worker.get("job_demand_id")
    if demand_id:
        demand = await Database.db.job_demands.find_one({"_id": ObjectId(demand_id)})
        linked = demand and worker["_id"] in demand.get("workers", [])
        print(f"\n🔗 Job demand {demand_id}: {'linked' if linked else 'NOT linked'}")

    await Database.disconnect()

if __name__ == "__main__":
    asyncio.run(check_worker(sys.argv[1] if len(sys.argv) > 1 else None))
