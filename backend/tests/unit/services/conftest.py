"""Shared pytest fixtures for service tests: an in-memory report backend."""

import asyncio
import copy
import pytest
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from sqlalchemy.exc import IntegrityError

from src.services.report_editor import ReportServices
from src.services.report_loader import ReportLoader
from src.services.report_save_service import ReportSaveService
from src.services.returned_inbox import ReturnedInboxService


class FakeSession:
    """Stands in for AsyncSession.begin_nested: restores the store on error."""

    def __init__(self, backend: "FakeBackend"):
        self.backend = backend
        self.savepoints = 0
        self.rollbacks = 0

    @asynccontextmanager
    async def begin_nested(self):
        self.savepoints += 1
        snapshot = self.backend.snapshot()
        try:
            yield
        except BaseException:
            self.rollbacks += 1
            self.backend.restore(snapshot)
            raise


class FakeBackend:
    """
    Dict-backed store shared by the fake repositories.

    ``gates`` suspend a call until the event is set; ``failures`` make a
    call raise. Both are keyed by "<table>.<method>".
    """

    def __init__(self):
        self.reports = {}
        self.rows = {}
        self.assignments = []
        self.operators = {}
        self.calls = []
        self.gates = {}
        self.failures = {}
        self.session = FakeSession(self)
        self._tick = 0

    def now(self):
        self._tick += 1
        return datetime(2025, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=self._tick)

    async def hit(self, name):
        self.calls.append(name)
        await asyncio.sleep(0)
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        exc = self.failures.get(name)
        if exc is not None:
            raise exc

    def snapshot(self):
        return copy.deepcopy((self.reports, self.rows, self.assignments))

    def restore(self, snapshot):
        self.reports, self.rows, self.assignments = snapshot

    def add_operator(self, name=None, first_name=None, last_name=None):
        op = SimpleNamespace(id=uuid.uuid4(), name=name, first_name=first_name, last_name=last_name)
        self.operators[op.id] = op
        return op

    def add_report(self, author_id, crew_role, report_date, **fields):
        now = self.now()
        report = SimpleNamespace(
            id=uuid.uuid4(),
            author_id=author_id,
            crew_role=crew_role,
            report_date=report_date,
            site_code=fields.pop("site_code", ""),
            contract_code=fields.pop("contract_code", ""),
            status=fields.pop("status", "DRAFT"),
            total_output=fields.pop("total_output", 0.0),
            created_by=fields.pop("created_by", author_id),
            last_edited_by=fields.pop("last_edited_by", author_id),
            acting_for_author_id=fields.pop("acting_for_author_id", None),
            created_at=now,
            updated_at=now,
        )
        self.reports[report.id] = report
        return report

    def add_row(self, report_id, position, **fields):
        row = SimpleNamespace(
            id=uuid.uuid4(),
            report_id=report_id,
            position=position,
            row_index=position + 1,
            category=fields.get("category", ""),
            description=fields.get("description", ""),
            legacy_operators_text=fields.get("legacy_operators_text", ""),
            legacy_hours_text=fields.get("legacy_hours_text", ""),
            planned_quantity=fields.get("planned_quantity"),
            produced_quantity=fields.get("produced_quantity"),
            note=fields.get("note", ""),
            activity_reference_id=fields.get("activity_reference_id"),
        )
        self.rows[row.id] = row
        return row

    def add_assignment(self, row_id, operator_id, line_index, raw_hours_text="", parsed_hours=None):
        item = SimpleNamespace(
            id=uuid.uuid4(),
            report_row_id=row_id,
            operator_id=operator_id,
            line_index=line_index,
            raw_hours_text=raw_hours_text,
            parsed_hours=parsed_hours,
        )
        self.assignments.append(item)
        return item

    def rows_of(self, report_id):
        return sorted(
            (r for r in self.rows.values() if r.report_id == report_id), key=lambda r: r.position
        )

    def assignments_of(self, row_id):
        return sorted(
            (a for a in self.assignments if a.report_row_id == row_id), key=lambda a: a.line_index
        )


class FakeReportRepository:
    def __init__(self, backend):
        self.backend = backend
        self.session = backend.session

    async def find_latest(self, author_id, crew_role, report_date):
        await self.backend.hit("reports.find_latest")
        matches = [
            r
            for r in self.backend.reports.values()
            if r.author_id == author_id and r.crew_role == crew_role and r.report_date == report_date
        ]
        return max(matches, key=lambda r: (r.created_at, r.id)) if matches else None

    async def get_by_id(self, report_id):
        await self.backend.hit("reports.get_by_id")
        return self.backend.reports.get(report_id)

    async def create(self, **fields):
        await self.backend.hit("reports.create")
        return self.backend.add_report(**fields)

    async def update(self, report_id, **fields):
        await self.backend.hit("reports.update")
        report = self.backend.reports.get(report_id)
        if report is None:
            return None
        for key, value in fields.items():
            setattr(report, key, value)
        report.updated_at = self.backend.now()
        return report

    async def count_by_status(self, author_id, crew_role, status):
        await self.backend.hit("reports.count_by_status")
        return sum(
            1
            for r in self.backend.reports.values()
            if r.author_id == author_id and r.crew_role == crew_role and r.status == status
        )

    async def latest_by_status(self, author_id, crew_role, status):
        await self.backend.hit("reports.latest_by_status")
        matches = [
            r
            for r in self.backend.reports.values()
            if r.author_id == author_id and r.crew_role == crew_role and r.status == status
        ]
        return max(matches, key=lambda r: r.updated_at) if matches else None


class FakeRowRepository:
    def __init__(self, backend):
        self.backend = backend
        self.session = backend.session

    async def list_by_report(self, report_id):
        await self.backend.hit("rows.list_by_report")
        return self.backend.rows_of(report_id)

    async def list_ids(self, report_id):
        await self.backend.hit("rows.list_ids")
        return [r.id for r in self.backend.rows_of(report_id)]

    async def delete_by_report(self, report_id):
        await self.backend.hit("rows.delete_by_report")
        doomed = [rid for rid, r in self.backend.rows.items() if r.report_id == report_id]
        for rid in doomed:
            del self.backend.rows[rid]
        return len(doomed)

    async def insert_many(self, rows):
        await self.backend.hit("rows.insert_many")
        return [
            self.backend.add_row(
                fields["report_id"],
                fields["position"],
                **{k: v for k, v in fields.items() if k not in ("report_id", "position")},
            )
            for fields in rows
        ]


class FakeAssignmentRepository:
    def __init__(self, backend):
        self.backend = backend
        self.session = backend.session

    async def list_by_row_ids(self, row_ids):
        await self.backend.hit("assignments.list_by_row_ids")
        wanted = set(row_ids)
        return sorted(
            (a for a in self.backend.assignments if a.report_row_id in wanted),
            key=lambda a: (str(a.report_row_id), a.line_index),
        )

    async def delete_by_row_ids(self, row_ids):
        await self.backend.hit("assignments.delete_by_row_ids")
        wanted = set(row_ids)
        before = len(self.backend.assignments)
        self.backend.assignments = [
            a for a in self.backend.assignments if a.report_row_id not in wanted
        ]
        return before - len(self.backend.assignments)

    async def insert_many(self, items):
        await self.backend.hit("assignments.insert_many")
        for fields in items:
            clash = any(
                a.report_row_id == fields["report_row_id"] and a.operator_id == fields["operator_id"]
                for a in self.backend.assignments
            )
            if clash:
                raise IntegrityError(
                    "INSERT INTO row_operator_assignments",
                    None,
                    Exception("duplicate key value violates unique constraint"),
                )
            self.backend.add_assignment(
                fields["report_row_id"],
                fields["operator_id"],
                fields["line_index"],
                raw_hours_text=fields["raw_hours_text"],
                parsed_hours=fields["parsed_hours"],
            )
        return len(items)


class FakeOperatorRepository:
    def __init__(self, backend):
        self.backend = backend
        self.session = backend.session

    async def get_many(self, operator_ids):
        await self.backend.hit("operators.get_many")
        return [self.backend.operators[i] for i in operator_ids if i in self.backend.operators]


@pytest.fixture
def backend():
    """Empty in-memory report backend."""
    return FakeBackend()


@pytest.fixture
def report_loader(backend):
    return ReportLoader(
        report_repository=FakeReportRepository(backend),
        row_repository=FakeRowRepository(backend),
        assignment_repository=FakeAssignmentRepository(backend),
        operator_repository=FakeOperatorRepository(backend),
    )


@pytest.fixture
def inbox_service(backend):
    return ReturnedInboxService(FakeReportRepository(backend))


@pytest.fixture
def save_service(backend, inbox_service):
    return ReportSaveService(
        report_repository=FakeReportRepository(backend),
        row_repository=FakeRowRepository(backend),
        assignment_repository=FakeAssignmentRepository(backend),
        returned_inbox=inbox_service,
    )


@pytest.fixture
def services_scope(backend):
    """Scope factory yielding services over the fake backend, like report_services_scope."""

    @asynccontextmanager
    async def scope():
        inbox = ReturnedInboxService(FakeReportRepository(backend))
        yield ReportServices(
            loader=ReportLoader(
                report_repository=FakeReportRepository(backend),
                row_repository=FakeRowRepository(backend),
                assignment_repository=FakeAssignmentRepository(backend),
                operator_repository=FakeOperatorRepository(backend),
            ),
            saver=ReportSaveService(
                report_repository=FakeReportRepository(backend),
                row_repository=FakeRowRepository(backend),
                assignment_repository=FakeAssignmentRepository(backend),
                returned_inbox=inbox,
            ),
            inbox=inbox,
        )

    return scope
