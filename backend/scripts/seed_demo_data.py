#!/usr/bin/env python3
"""
SPECTRA Demo Seed Data
======================

Populates the database with a small but complete fiber network for demos
and testing.

Network topology:
  OLT  Central Office          head-end, PON ports 1..4
   └─ 24-core ADSS feeder ──► ODC Cabinet A
                               ├─ 12-core DUCT ──► ODP North  (3 customers)
                               └─ 12-core DUCT ──► ODP South  (3 customers)

Every customer port at an ODP is spliced through the ODC onto a feeder core
and terminated on an OLT port, so every customer traces back to the OLT.

Usage:
    python scripts/seed_demo_data.py              # seed fresh data (clears existing)
    python scripts/seed_demo_data.py --append     # add to existing data
    python scripts/seed_demo_data.py --db path/to/spectra.db

Requirements:
    Run from the backend/ directory (or set PYTHONPATH).
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

# ── Ensure we can import project modules ────────────────────────────
SCRIPT_DIR = Path(__file__).resolve().parent
BACKEND_DIR = SCRIPT_DIR.parent
sys.path.insert(0, str(BACKEND_DIR))

# ── Default DB path ─────────────────────────────────────────────────
DEFAULT_DB = BACKEND_DIR / "data" / "spectra.db"


# ══════════════════════════════════════════════════════════════════════
# Demo data definitions
# ══════════════════════════════════════════════════════════════════════

NODES = {
    "olt": {"name": "OLT Central Office", "type": "OLT", "latitude": -6.200000, "longitude": 106.816666,
            "capacity_ports": 16, "model": "GPON-OLT-16", "address": "Jl. Merdeka 1"},
    "odc": {"name": "ODC Cabinet A", "type": "ODC", "latitude": -6.205200, "longitude": 106.822100,
            "capacity_ports": 48, "address": "Jl. Kebon Sirih 12"},
    "odp_n": {"name": "ODP North", "type": "ODP", "latitude": -6.203100, "longitude": 106.827400,
              "capacity_ports": 8},
    "odp_s": {"name": "ODP South", "type": "ODP", "latitude": -6.209800, "longitude": 106.826300,
              "capacity_ports": 8},
}

# key, type, core_count, origin, dest, color
CABLES = [
    ("feeder", "ADSS", 24, "olt", "odc", "#1e90ff"),
    ("dist_n", "DUCT", 12, "odc", "odp_n", "#22c55e"),
    ("dist_s", "DUCT", 12, "odc", "odp_s", "#f97316"),
]

# (odp key, distribution cable key, feeder core offset, customers)
SERVICE_AREAS = [
    ("odp_n", "dist_n", 0, [
        ("Andi Wijaya", "ZTEG1A2B3C01", -19.8),
        ("Budi Santoso", "ZTEG1A2B3C02", -24.1),
        ("Citra Lestari", "ZTEG1A2B3C03", -26.4),
    ]),
    ("odp_s", "dist_s", 3, [
        ("Dewi Anggraini", "HWTC9F8E7D01", -21.5),
        ("Eko Prasetyo", "HWTC9F8E7D02", -27.9),
        ("Fajar Nugroho", "HWTC9F8E7D03", None),
    ]),
]


def _route(a: dict, b: dict) -> list:
    """Straight two-point route between nodes as [[lng, lat], ...]."""
    return [[a["longitude"], a["latitude"]], [b["longitude"], b["latitude"]]]


async def seed_network(append: bool = False) -> dict:
    """Create the demo network through the topology store."""
    from sqlalchemy import delete, select

    from database import AsyncSessionLocal, init_db
    from models import Cable, CableCore, Connection, Customer, Node
    from schemas import CableCreate, ConnectionCreate, CustomerCreate, CustomerStatusUpdate, NodeCreate
    from services import topology_store as store
    from utils.audit import audit

    await init_db()

    async with AsyncSessionLocal() as db:
        if not append:
            print("   Clearing existing data...")
            for model in (Customer, Connection, CableCore, Cable, Node):
                await db.execute(delete(model))
            await db.commit()

        # ── 1. Nodes ─────────────────────────────────────────────
        nodes = {}
        for key, spec in NODES.items():
            nodes[key] = await store.create_node(db, NodeCreate(**spec))
        print(f"   ✓ {len(nodes)} nodes")

        # ── 2. Cables (cores are generated with them) ────────────
        cables = {}
        for key, cable_type, core_count, origin, dest, color in CABLES:
            cables[key] = await store.create_cable(db, CableCreate(
                name=f"{NODES[origin]['name']} → {NODES[dest]['name']}",
                type=cable_type,
                core_count=core_count,
                origin_node_id=nodes[origin].id,
                dest_node_id=nodes[dest].id,
                path_coordinates=_route(NODES[origin], NODES[dest]),
                color_hex=color,
            ))
        print(f"   ✓ {len(cables)} cables")

        async def core_id(cable_key: str, index: int) -> int:
            result = await db.execute(
                select(CableCore.id).where(
                    CableCore.cable_id == cables[cable_key].id,
                    CableCore.core_index == index,
                )
            )
            return result.scalar_one()

        # ── 3. Splices and customers ─────────────────────────────
        splice_count = 0
        customer_count = 0
        for odp_key, dist_key, feeder_offset, customers in SERVICE_AREAS:
            for port, (name, ont_sn, rx_power) in enumerate(customers, start=1):
                dist_core = await core_id(dist_key, port)
                feeder_core = await core_id("feeder", feeder_offset + port)

                # ODP port → distribution core → feeder core → OLT PON port
                for location, in_type, in_id, out_type, out_id, loss in (
                    (odp_key, "PORT", port, "CORE", dist_core, 0.5),
                    ("odc", "CORE", dist_core, "CORE", feeder_core, 0.3),
                    ("olt", "CORE", feeder_core, "PORT", feeder_offset + port, 0.2),
                ):
                    await store.create_connection(db, ConnectionCreate(
                        location_node_id=nodes[location].id,
                        input_type=in_type,
                        input_id=in_id,
                        output_type=out_type,
                        output_id=out_id,
                        loss_db=loss,
                    ))
                    splice_count += 1

                customer = await store.create_customer(db, CustomerCreate(
                    node_id=nodes[odp_key].id,
                    name=name,
                    ont_sn=ont_sn,
                    subscription_type="HOME-50M",
                ))
                if rx_power is None:
                    status = CustomerStatusUpdate(status="LOS")
                else:
                    status = CustomerStatusUpdate(status="ONLINE", rx_power=rx_power)
                await store.update_customer_status(db, customer.id, status.status, status.rx_power)
                customer_count += 1

        print(f"   ✓ {splice_count} splices")
        print(f"   ✓ {customer_count} customers")

        node_count = len((await db.execute(select(Node.id))).all())

    audit.log_seed_data(status="success", node_count=node_count)
    return {
        "nodes": len(nodes),
        "cables": len(cables),
        "connections": splice_count,
        "customers": customer_count,
    }


def seed_database(db_path: Path, append: bool = False) -> None:
    """Point the app at db_path and populate it with demo data."""
    print(f"🌱 Seeding demo network into: {db_path}")
    os.environ["DATABASE_URL"] = f"sqlite:///{db_path}"

    counts = asyncio.run(seed_network(append=append))

    print()
    print("✅ Demo network seeded successfully!")
    for name, count in counts.items():
        print(f"   {name.capitalize()}: {count}")
    print()
    print("   Trace any customer with GET /api/customers/{id}/trace")


# ══════════════════════════════════════════════════════════════════════
# CLI
# ══════════════════════════════════════════════════════════════════════

def main():
    parser = argparse.ArgumentParser(
        description="SPECTRA Demo Seed Data — populate the database with an example fiber network",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/seed_demo_data.py                          # Seed fresh demo data
  python scripts/seed_demo_data.py --append                 # Add demo data to existing
  python scripts/seed_demo_data.py --db /path/to/spectra.db # Use specific DB file
        """,
    )
    parser.add_argument(
        "--db", type=str, default=str(DEFAULT_DB),
        help=f"Path to SQLite database (default: {DEFAULT_DB})",
    )
    parser.add_argument(
        "--append", action="store_true",
        help="Add data without clearing existing records",
    )

    args = parser.parse_args()
    db_path = Path(args.db)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    seed_database(db_path, append=args.append)


if __name__ == "__main__":
    main()
