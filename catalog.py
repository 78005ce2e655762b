"""
Static event table for the festival.

Loaded once at import time; there is no mutation path. Lookups are dict
backed and raise EventNotFound for unknown ids instead of falling back to a
default event.
"""
from datetime import date
from typing import Dict, Iterable, List, Optional

from errors import EventNotFound
from schemas import EventCategory, EventDescriptor

EVENTS = (
    EventDescriptor(
        id="web-dev",
        name="Web Development Challenge",
        category=EventCategory.TECHNICAL,
        description="Build a responsive web application against the clock.",
        price=200,
        max_participants=60,
        deadline=date(2025, 3, 10),
    ),
    EventDescriptor(
        id="poster-presentation",
        name="Poster Presentation",
        category=EventCategory.TECHNICAL,
        description="Present a technical poster to a panel of judges.",
        price=300,
        requires_team=True,
        team_size=2,
        deadline=date(2025, 3, 10),
    ),
    EventDescriptor(
        id="techexpo",
        name="Tech Expo",
        category=EventCategory.TECHNICAL,
        description="Demo a working hardware or software project.",
        price=400,
        requires_team=True,
        team_size=3,
        deadline=date(2025, 3, 8),
    ),
    EventDescriptor(
        id="pycharm",
        name="PyCharm Programming Contest",
        category=EventCategory.TECHNICAL,
        description="Timed competitive programming round in Python.",
        price=150,
        max_participants=100,
        deadline=date(2025, 3, 12),
    ),
    EventDescriptor(
        id="technical-quiz",
        name="Technical Quiz",
        category=EventCategory.TECHNICAL,
        description="Computer science quiz for teams of two.",
        price=200,
        requires_team=True,
        team_size=1,
        deadline=date(2025, 3, 12),
    ),
    EventDescriptor(
        id="photo-contest",
        name="Photography Contest",
        category=EventCategory.NON_TECHNICAL,
        description="Submit your best shot on the festival theme.",
        price=100,
        deadline=date(2025, 3, 14),
    ),
    EventDescriptor(
        id="tech-meme-contest",
        name="Tech Meme Contest",
        category=EventCategory.NON_TECHNICAL,
        description="Original memes about life in tech.",
        price=50,
        deadline=date(2025, 3, 14),
    ),
    EventDescriptor(
        id="bgmi-esports",
        name="BGMI Esports Tournament",
        category=EventCategory.NON_TECHNICAL,
        description="Squad battle royale, four players per squad.",
        price=400,
        max_participants=25,
        requires_team=True,
        team_size=3,
        requires_game_ids=True,
        deadline=date(2025, 3, 6),
    ),
    EventDescriptor(
        id="freefire-esports",
        name="Free Fire Esports Championship",
        category=EventCategory.NON_TECHNICAL,
        description="Squad championship, four players per squad.",
        price=400,
        max_participants=25,
        requires_team=True,
        team_size=3,
        requires_game_ids=True,
        deadline=date(2025, 3, 6),
    ),
)


class EventCatalog:
    def __init__(self, events: Iterable[EventDescriptor]):
        self._events: Dict[str, EventDescriptor] = {}
        for event in events:
            if event.id in self._events:
                raise ValueError(f"Duplicate event id in catalog: {event.id}")
            self._events[event.id] = event

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._events

    def __len__(self) -> int:
        return len(self._events)

    def lookup(self, event_id: str) -> EventDescriptor:
        try:
            return self._events[event_id]
        except KeyError:
            raise EventNotFound(event_id) from None

    def list_events(self, category: Optional[EventCategory] = None) -> List[EventDescriptor]:
        events = list(self._events.values())
        if category is not None:
            events = [e for e in events if e.category == category]
        return events


catalog = EventCatalog(EVENTS)
