#!/usr/bin/env python3
"""
Initialize the database with a demo router profile and netwatch devices
"""

import asyncio
import sys
import os
from datetime import timedelta

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from netwatch_monitor.collectors.snapshot_source import StaticSnapshotSource
from netwatch_monitor.database.connection import SessionLocal, init_database, utcnow
from netwatch_monitor.models.router_profile import RouterProfile
from netwatch_monitor.services.profile_store import create_profile
from netwatch_monitor.services.sync import sync_netwatch

DEMO_ADDRESS = "192.168.88.1"

def demo_snapshot():
    now = utcnow()
    return [
        {"native_id": "*1", "address": "8.8.8.8", "label": "Google DNS", "status": "up",
         "since": now - timedelta(hours=2), "timeout": "5s", "interval": "00:01:00"},
        {"native_id": "*2", "address": "192.168.88.100", "label": "Server Internal", "status": "up",
         "since": now - timedelta(hours=1), "timeout": "3s", "interval": "00:01:00"},
        {"native_id": "*3", "address": "192.168.88.50", "label": "Printer HP", "status": "down",
         "since": now - timedelta(minutes=30), "timeout": "5s", "interval": "00:02:00"},
        {"native_id": "*4", "address": "1.1.1.1", "label": "Cloudflare DNS", "status": "up",
         "since": now - timedelta(hours=3), "timeout": "5s", "interval": "00:01:00"},
    ]

def create_sample_data():
    """Create a demo router profile and reconcile a fixed snapshot into it"""

    # Initialize database
    asyncio.run(init_database())

    session = SessionLocal()

    try:
        profile = session.query(RouterProfile).filter(RouterProfile.address == DEMO_ADDRESS).first()
        if not profile:
            profile = create_profile(session, {
                "name": "Demo Router",
                "address": DEMO_ADDRESS,
                "username": "admin",
                "password": "admin",
                "is_active": True
            })
        print(f"✅ Router profile ready (id={profile.id})")

        source = StaticSnapshotSource({DEMO_ADDRESS: demo_snapshot()}, identity="Demo RouterOS")
        result = asyncio.run(sync_netwatch(session, profile.id, source))
        summary = result.summary
        print(f"✅ Netwatch devices synced: {summary.total_devices} total, "
              f"{summary.up_devices} up, {summary.down_devices} down")

        print("\n🎉 Database initialization complete!")
        print("You can now start the API with: python -m netwatch_monitor.main")

    except Exception as e:
        print(f"❌ Error initializing database: {e}")
        session.rollback()
        raise
    finally:
        session.close()

if __name__ == "__main__":
    create_sample_data()
