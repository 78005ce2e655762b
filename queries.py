"""
Read-only views over the registrations ledger for the admin panel.
"""
from dataclasses import dataclass
from typing import List, Optional

from database import RegistrationStore
from schemas import ConfirmedRegistration

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@dataclass(frozen=True)
class ExportFile:
    filename: str
    content: bytes
    media_type: str = XLSX_MEDIA_TYPE


def list_registrations(store: RegistrationStore, event_id: Optional[str] = None) -> List[ConfirmedRegistration]:
    if event_id is None:
        return store.list_all()
    return store.list_by_event(event_id)


def export_registrations(store: RegistrationStore, filename: str) -> Optional[ExportFile]:
    content = store.export_file()
    if content is None:
        return None
    return ExportFile(filename=filename, content=content)
