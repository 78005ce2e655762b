"""
Spreadsheet-backed registration ledger.

The whole table lives in one .xlsx file. Every append reads the full sheet,
adds one row and rewrites the file, so writers are serialized behind a single
lock. The rewrite goes to a temporary file that is then moved over the ledger,
so readers never observe a half-written workbook.
"""
import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from openpyxl import Workbook, load_workbook
from pydantic import TypeAdapter

from config import settings
from errors import StoreWriteError
from schemas import ConfirmedRegistration, GameId, NewRegistration, TeamMember

logger = logging.getLogger(__name__)

HEADERS = (
    "Registration ID",
    "Event ID",
    "Event Name",
    "Participant Name",
    "Email",
    "Phone",
    "College",
    "Total Amount",
    "Payment Status",
    "Payment ID",
    "Registration Date",
    "Team Members",
    "Game IDs",
)

# Column header -> ConfirmedRegistration field
COLUMNS = dict(zip(HEADERS, (
    "registration_id",
    "event_id",
    "event_name",
    "participant_name",
    "email",
    "phone",
    "college",
    "total_amount",
    "payment_status",
    "payment_id",
    "registration_date",
    "team_members",
    "game_ids",
)))

MAX_ID_ATTEMPTS = 10

_team_adapter = TypeAdapter(List[TeamMember])
_game_adapter = TypeAdapter(List[GameId])


def encode_nested(items: Optional[Sequence[Any]]) -> str:
    """Encode a list of models as compact JSON for a single cell. None -> ''."""
    if items is None:
        return ""
    return json.dumps(
        [item.model_dump(by_alias=True, exclude_none=True) for item in items],
        separators=(",", ":"),
        ensure_ascii=False,
    )


def decode_nested(cell: Any, adapter: TypeAdapter) -> Optional[list]:
    if cell is None or cell == "":
        return None
    return adapter.validate_python(json.loads(cell))


def new_registration_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8].upper()}"


def _text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


class RegistrationStore:
    def __init__(self, path, sheet_name: str = "Registrations", default_prefix: str = "CACHE2K25"):
        self.path = Path(path)
        self.sheet_name = sheet_name
        self.default_prefix = default_prefix
        self._lock = threading.Lock()

    # File plumbing

    def exists(self) -> bool:
        return self.path.exists()

    def initialize(self) -> None:
        """Create the ledger with just the header row if it does not exist yet."""
        with self._lock:
            self._initialize()

    def _initialize(self) -> None:
        if self.path.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._save([])
        logger.info("Initialized registrations ledger at %s", self.path)

    def _load(self) -> List[tuple]:
        workbook = load_workbook(self.path)
        try:
            sheet = workbook[self.sheet_name]
            return [row for row in sheet.iter_rows(min_row=2, values_only=True) if any(c is not None for c in row)]
        finally:
            workbook.close()

    def _save(self, rows: Sequence[Sequence[Any]]) -> None:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = self.sheet_name
        sheet.append(HEADERS)
        for row in rows:
            sheet.append(list(row))
            # Text never becomes a formula, even when it starts with "=".
            for cell in sheet[sheet.max_row]:
                if isinstance(cell.value, str):
                    cell.data_type = "s"
        tmp_path = self.path.with_name(f".{self.path.name}.{uuid.uuid4().hex}.tmp")
        try:
            workbook.save(tmp_path)
            os.replace(tmp_path, self.path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

    # Row mapping

    @staticmethod
    def _to_row(registration: ConfirmedRegistration) -> tuple:
        return (
            registration.registration_id,
            registration.event_id,
            registration.event_name,
            registration.participant_name,
            registration.email,
            registration.phone,
            registration.college or "",
            registration.total_amount,
            registration.payment_status,
            registration.payment_id,
            registration.registration_date.isoformat(),
            encode_nested(registration.team_members),
            encode_nested(registration.game_ids),
        )

    @staticmethod
    def _from_row(row: Sequence[Any]) -> ConfirmedRegistration:
        record: Dict[str, Any] = dict(zip(COLUMNS.values(), row))
        for field in ("registration_id", "event_id", "event_name", "participant_name",
                      "email", "phone", "college", "payment_status", "payment_id"):
            record[field] = _text(record.get(field))
        record["team_members"] = decode_nested(record.get("team_members"), _team_adapter)
        record["game_ids"] = decode_nested(record.get("game_ids"), _game_adapter)
        return ConfirmedRegistration.model_validate(record)

    # Ledger operations

    def append(self, registration: NewRegistration, prefix: Optional[str] = None) -> ConfirmedRegistration:
        """Assign an id and date to a paid registration and persist it."""
        prefix = prefix or self.default_prefix
        with self._lock:
            try:
                self._initialize()
                rows = self._load()
                taken = {row[0] for row in rows}
                for _ in range(MAX_ID_ATTEMPTS):
                    registration_id = new_registration_id(prefix)
                    if registration_id not in taken:
                        break
                else:
                    raise StoreWriteError("Could not allocate a unique registration id")

                confirmed = ConfirmedRegistration(
                    **registration.model_dump(exclude={"payment_status"}),
                    registration_id=registration_id,
                    registration_date=datetime.now(timezone.utc),
                )
                rows.append(self._to_row(confirmed))
                self._save(rows)
            except StoreWriteError:
                raise
            except Exception as exc:
                raise StoreWriteError(f"Failed to save registration: {exc}") from exc

        logger.info("Saved registration %s for event %s", confirmed.registration_id, confirmed.event_id)
        return confirmed

    def list_all(self) -> List[ConfirmedRegistration]:
        if not self.path.exists():
            return []
        return [self._from_row(row) for row in self._load()]

    def list_by_event(self, event_id: str) -> List[ConfirmedRegistration]:
        return [r for r in self.list_all() if r.event_id == event_id]

    def export_file(self) -> Optional[bytes]:
        """Raw bytes of the ledger, or None if it was never initialized."""
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return None


store = RegistrationStore(
    settings.REGISTRATIONS_PATH,
    sheet_name=settings.SHEET_NAME,
    default_prefix=settings.REGISTRATION_PREFIX,
)


def get_store() -> RegistrationStore:
    return store
