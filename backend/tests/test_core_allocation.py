"""
Tests for core generation and core state transitions.

Covers:
- Palette and index assignment for generated cores
- USED/VACANT transitions driven by connection create/delete
- Operator states (RESERVED, DAMAGED) surviving splice changes
- Reconciliation from the connection table
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from models import Cable, CableCore, Connection
from network.constants import FIBER_COLORS
from services.core_allocation import (
    core_colors,
    generate_cores,
    on_connection_created,
    on_connection_deleted,
    reconcile_core_states,
)
from services import topology_store as store
from services.topology_store import TopologyStoreError


# ============================================================================
# Core generation
# ============================================================================

class TestGenerateCores:

    def test_generates_requested_count(self):
        cores = generate_cores(1, 24)
        assert len(cores) == 24
        assert [c.core_index for c in cores] == list(range(1, 25))
        assert all(c.status == "VACANT" for c in cores)
        assert all(c.cable_id == 1 for c in cores)

    def test_first_tube_colors(self):
        cores = generate_cores(1, 12)
        assert [c.core_color for c in cores] == list(FIBER_COLORS)
        assert all(c.tube_color == "Blue" for c in cores)

    def test_core_13_starts_second_tube(self):
        tube, core = core_colors(13)
        assert tube == FIBER_COLORS[1]
        assert core == FIBER_COLORS[0]

    def test_tube_sequence_wraps_after_144(self):
        tube, core = core_colors(145)
        assert tube == FIBER_COLORS[0]
        assert core == FIBER_COLORS[0]

    def test_maximum_cable(self):
        cores = generate_cores(1, 288)
        assert cores[-1].core_index == 288
        assert cores[-1].tube_color == FIBER_COLORS[11]
        assert cores[-1].core_color == FIBER_COLORS[11]

    def test_zero_count_rejected(self):
        with pytest.raises(ValueError):
            generate_cores(1, 0)


# ============================================================================
# State transitions
# ============================================================================

async def _cable_with_cores(db, count=4):
    cable = Cable(type="ADSS", core_count=count)
    db.add(cable)
    await db.flush()
    cores = generate_cores(cable.id, count)
    db.add_all(cores)
    await db.commit()
    return cores


async def _splice(db, in_core, out_core):
    connection = Connection(
        input_type="CORE", input_id=in_core.id, output_type="CORE", output_id=out_core.id
    )
    db.add(connection)
    await db.flush()
    await on_connection_created(db, connection)
    await db.commit()
    return connection


async def _unsplice(db, connection):
    await db.delete(connection)
    await db.flush()
    await on_connection_deleted(db, connection)
    await db.commit()


async def _status(db, core_id):
    result = await db.execute(select(CableCore.status).where(CableCore.id == core_id))
    return result.scalar_one()


class TestConnectionHooks:

    @pytest.mark.asyncio
    async def test_create_marks_used_and_delete_releases(self, db_session):
        a, b, *_ = await _cable_with_cores(db_session)

        connection = await _splice(db_session, a, b)
        assert await _status(db_session, a.id) == "USED"
        assert await _status(db_session, b.id) == "USED"

        await _unsplice(db_session, connection)
        assert await _status(db_session, a.id) == "VACANT"
        assert await _status(db_session, b.id) == "VACANT"

    @pytest.mark.asyncio
    async def test_core_shared_by_two_splices_stays_used(self, db_session):
        a, b, c, _ = await _cable_with_cores(db_session)

        first = await _splice(db_session, a, b)
        await _splice(db_session, b, c)

        await _unsplice(db_session, first)
        assert await _status(db_session, a.id) == "VACANT"
        assert await _status(db_session, b.id) == "USED"

    @pytest.mark.asyncio
    async def test_reservation_consumed_by_splice(self, db_session):
        a, b, *_ = await _cable_with_cores(db_session)
        a.status = "RESERVED"
        await db_session.commit()

        connection = await _splice(db_session, a, b)
        assert await _status(db_session, a.id) == "USED"

        await _unsplice(db_session, connection)
        assert await _status(db_session, a.id) == "VACANT"

    @pytest.mark.asyncio
    async def test_damaged_is_never_changed(self, db_session):
        a, b, *_ = await _cable_with_cores(db_session)
        a.status = "DAMAGED"
        await db_session.commit()

        connection = await _splice(db_session, a, b)
        assert await _status(db_session, a.id) == "DAMAGED"

        await _unsplice(db_session, connection)
        assert await _status(db_session, a.id) == "DAMAGED"
        assert await _status(db_session, b.id) == "VACANT"

    @pytest.mark.asyncio
    async def test_missing_core_is_not_an_error(self, db_session):
        a, *_ = await _cable_with_cores(db_session)
        connection = Connection(input_type="CORE", input_id=a.id, output_type="CORE", output_id=9999)
        db_session.add(connection)
        await db_session.flush()

        await on_connection_created(db_session, connection)
        await db_session.commit()
        assert await _status(db_session, a.id) == "USED"

    @pytest.mark.asyncio
    async def test_port_endpoints_are_ignored(self, db_session):
        a, *_ = await _cable_with_cores(db_session)
        connection = Connection(input_type="PORT", input_id=a.id, output_type="PORT", output_id=2)
        db_session.add(connection)
        await db_session.flush()

        await on_connection_created(db_session, connection)
        await db_session.commit()
        assert await _status(db_session, a.id) == "VACANT"


class TestReconcile:

    @pytest.mark.asyncio
    async def test_repairs_drift(self, db_session):
        a, b, c, d = await _cable_with_cores(db_session)
        await _splice(db_session, a, b)

        # Drift: spliced core marked VACANT, unspliced core marked USED
        a.status = "VACANT"
        c.status = "USED"
        d.status = "RESERVED"
        await db_session.commit()

        result = await reconcile_core_states(db_session)

        assert result.cores_checked == 4
        assert result.cores_changed == 2
        assert await _status(db_session, a.id) == "USED"
        assert await _status(db_session, c.id) == "VACANT"
        assert await _status(db_session, d.id) == "RESERVED"

    @pytest.mark.asyncio
    async def test_no_changes_when_consistent(self, db_session):
        await _cable_with_cores(db_session)

        result = await reconcile_core_states(db_session)
        assert result.cores_changed == 0

    @pytest.mark.asyncio
    async def test_store_failure_rolls_back(self, db_session, monkeypatch):
        a, b, *_ = await _cable_with_cores(db_session)
        await _splice(db_session, a, b)
        a.status = "VACANT"
        await db_session.commit()

        async def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "commit", failing_commit)

        with pytest.raises(TopologyStoreError) as exc_info:
            await store.reconcile_cores(db_session)
        assert exc_info.value.operation == "reconcile core states"
        assert await _status(db_session, a.id) == "VACANT"
