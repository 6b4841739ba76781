from __future__ import annotations

import itertools
import secrets
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

Row = Dict[str, Any]


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_pay_link_token() -> str:
    return secrets.token_urlsafe(9)


class _BaseRepository:
    def __init__(self, prefix: str) -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)

    def _next_id(self) -> str:
        return f"{self._prefix}-{next(self._counter):05d}"


class StudentRepository(_BaseRepository):
    def __init__(self) -> None:
        super().__init__("STU")
        self._students: Dict[str, Row] = {}

    def add(self, *, name: str, class_name: str, roll: str) -> Row:
        student_id = self._next_id()
        record = {"id": student_id, "name": name, "class": class_name, "roll": roll}
        self._students[student_id] = record
        return dict(record)

    def lookup(self, student_id: Optional[str]) -> Optional[Row]:
        student = self._students.get(student_id) if student_id else None
        return dict(student) if student is not None else None

    async def get(self, student_id: str) -> Optional[Row]:
        return self.lookup(student_id)

    async def search(
        self,
        *,
        name: str = "",
        class_name: str = "",
        roll: str = "",
        limit: int = 10,
    ) -> List[Row]:
        matches: List[Row] = []
        for student in self._students.values():
            if name and name.lower() not in str(student["name"]).lower():
                continue
            if class_name and student["class"] != class_name:
                continue
            if roll and student["roll"] != roll:
                continue
            matches.append(dict(student))
            if len(matches) >= limit:
                break
        return matches

    def rows(self) -> List[Row]:
        return [dict(student) for student in self._students.values()]


class ParentRepository(_BaseRepository):
    """Parents plus the ``student_parents`` link table."""

    def __init__(self) -> None:
        super().__init__("PAR")
        self._parents: Dict[str, Row] = {}
        self._links: List[Row] = []

    def add(self, *, name: str, phone: Optional[str], student_ids: Iterable[str] = ()) -> Row:
        parent_id = self._next_id()
        record = {"id": parent_id, "name": name, "phone": phone}
        self._parents[parent_id] = record
        for student_id in student_ids:
            self.link(student_id, parent_id)
        return dict(record)

    def link(self, student_id: str, parent_id: str) -> None:
        self._links.append({"student_id": student_id, "parent_id": parent_id})

    def parents_of(self, student_id: str) -> List[Row]:
        return [
            {"parent": dict(self._parents[link["parent_id"]])}
            for link in self._links
            if link["student_id"] == student_id and link["parent_id"] in self._parents
        ]

    def rows(self) -> List[Row]:
        return [dict(parent) for parent in self._parents.values()]

    def link_rows(self) -> List[Row]:
        return [dict(link) for link in self._links]


class InvoiceRepository(_BaseRepository):
    def __init__(self, students: StudentRepository, parents: ParentRepository) -> None:
        super().__init__("INV")
        self._invoices: Dict[str, Row] = {}
        self._students = students
        self._parents = parents

    def _student_ref(self, student_id: Optional[str]) -> Optional[Row]:
        return self._students.lookup(student_id)

    def _with_student(self, invoice: Row) -> Row:
        row = dict(invoice)
        row["student"] = self._student_ref(invoice.get("student_id"))
        return row

    def add(self, **fields: Any) -> Row:
        invoice_id = self._next_id()
        record: Row = {
            "id": invoice_id,
            "student_id": fields.get("student_id"),
            "amount": fields.get("amount"),
            "due_date": str(fields["due_date"]),
            "status": fields.get("status") or "unpaid",
            "payment_date": fields.get("payment_date"),
            "created_at": fields.get("created_at") or _utc_now_iso(),
            "pay_link": fields.get("pay_link") or new_pay_link_token(),
            "parent_name": fields.get("parent_name"),
            "parent_contact": fields.get("parent_contact"),
        }
        self._invoices[invoice_id] = record
        return dict(record)

    async def create(self, payload: Row) -> Row:
        return self.add(**payload)

    async def get(self, invoice_id: str) -> Optional[Row]:
        invoice = self._invoices.get(invoice_id)
        return self._with_student(invoice) if invoice is not None else None

    async def update(self, invoice_id: str, changes: Row) -> Optional[Row]:
        invoice = self._invoices.get(invoice_id)
        if invoice is None:
            return None
        for key, value in changes.items():
            invoice[key] = str(value) if key == "due_date" else value
        return self._with_student(invoice)

    async def delete(self, invoice_id: str) -> bool:
        return self._invoices.pop(invoice_id, None) is not None

    async def list_with_students(self) -> List[Row]:
        invoices = sorted(
            self._invoices.values(),
            key=lambda invoice: str(invoice.get("created_at") or ""),
            reverse=True,
        )
        return [self._with_student(invoice) for invoice in invoices]

    async def unpaid_due_by(self, target: date) -> List[Row]:
        """Unpaid invoices due on or before ``target`` with student and parents."""

        rows: List[Row] = []
        for invoice in self._invoices.values():
            if invoice["status"] != "unpaid" or invoice["due_date"] > target.isoformat():
                continue
            student = self._student_ref(invoice.get("student_id"))
            if student is not None:
                student = {
                    "id": student["id"],
                    "name": student["name"],
                    "student_parents": self._parents.parents_of(student["id"]),
                }
            rows.append(
                {
                    "id": invoice["id"],
                    "amount": invoice["amount"],
                    "due_date": invoice["due_date"],
                    "student": student,
                }
            )
        return rows

    async def paid(self) -> List[Row]:
        invoices = sorted(
            (invoice for invoice in self._invoices.values() if invoice["status"] == "paid"),
            key=lambda invoice: str(invoice.get("payment_date") or ""),
            reverse=True,
        )
        return [self._with_student(invoice) for invoice in invoices]

    async def by_pay_link(self, token: str) -> Optional[Row]:
        for invoice in self._invoices.values():
            if invoice.get("pay_link") == token:
                return {"student_id": invoice.get("student_id")}
        return None

    async def for_student(self, student_id: str) -> List[Row]:
        invoices = [
            invoice for invoice in self._invoices.values()
            if invoice.get("student_id") == student_id
        ]
        invoices.sort(key=lambda invoice: invoice["due_date"], reverse=True)
        return [
            {
                "id": invoice["id"],
                "amount": invoice["amount"],
                "due_date": invoice["due_date"],
                "status": invoice["status"],
                "pay_link": invoice.get("pay_link"),
            }
            for invoice in invoices
        ]

    def rows(self) -> List[Row]:
        return [dict(invoice) for invoice in self._invoices.values()]


class AppendOnlyRepository(_BaseRepository):
    """Insert-only table such as ``payments`` or ``sms_logs``."""

    def __init__(self, prefix: str) -> None:
        super().__init__(prefix)
        self._records: List[Row] = []

    async def insert(self, payload: Row) -> Row:
        record = {"id": self._next_id(), **payload, "created_at": _utc_now_iso()}
        self._records.append(record)
        return dict(record)

    def rows(self) -> List[Row]:
        return [dict(record) for record in self._records]


@dataclass
class MockDataStore:
    students: StudentRepository
    parents: ParentRepository
    invoices: InvoiceRepository
    payments: AppendOnlyRepository
    sms_logs: AppendOnlyRepository

    def _seed(self, today: date) -> None:
        ali = self.students.add(name="Ali Raza", class_name="5", roll="12")
        ayesha = self.students.add(name="Ayesha Khan", class_name="7", roll="3")
        hamza = self.students.add(name="Hamza Siddiqui", class_name="5", roll="21")

        self.parents.add(name="Raza Ahmed", phone="0300-1234567", student_ids=[ali["id"]])
        self.parents.add(name="Imran Khan", phone="+92 321 7654321", student_ids=[ayesha["id"]])
        self.parents.add(name="Sana Khan", phone="03331112222", student_ids=[ayesha["id"]])
        self.parents.add(name="Tariq Siddiqui", phone=None, student_ids=[hamza["id"]])

        seed_invoices = [
            (ali, 2500, today + timedelta(days=2), "unpaid", None),
            (ali, 2500, today - timedelta(days=28), "paid", today - timedelta(days=30)),
            (ayesha, 3000, today + timedelta(days=1), "unpaid", None),
            (ayesha, 3000, today - timedelta(days=31), "paid", today - timedelta(days=33)),
            (hamza, 1800, today, "unpaid", None),
            (hamza, 1800, today + timedelta(days=20), "draft", None),
        ]
        for student, amount, due, status, paid_on in seed_invoices:
            parents = self.parents.parents_of(student["id"])
            first_parent = parents[0]["parent"] if parents else {}
            self.invoices.add(
                student_id=student["id"],
                amount=amount,
                due_date=due,
                status=status,
                payment_date=paid_on.isoformat() if paid_on else None,
                parent_name=first_parent.get("name"),
                parent_contact=first_parent.get("phone"),
            )


_mock_store: Optional[MockDataStore] = None


def build_mock_store(*, seed: bool = True, today: date | None = None) -> MockDataStore:
    students = StudentRepository()
    parents = ParentRepository()
    store = MockDataStore(
        students=students,
        parents=parents,
        invoices=InvoiceRepository(students, parents),
        payments=AppendOnlyRepository("PAY"),
        sms_logs=AppendOnlyRepository("SMS"),
    )
    if seed:
        store._seed(today or date.today())
    return store


def get_mock_store() -> MockDataStore:
    global _mock_store
    if _mock_store is None:
        _mock_store = build_mock_store()
    return _mock_store


def reset_mock_store(*, seed: bool = True) -> MockDataStore:
    global _mock_store
    _mock_store = build_mock_store(seed=seed)
    return _mock_store
