"""
Tests for turning form fields into a PendingRegistration.
"""
import pytest

from builder import build
from catalog import catalog
from errors import RegistrationValidationError


def error_fields(exc_info):
    return {e["field"] for e in exc_info.value.errors}


class TestBuildSolo:
    def test_valid_fields(self, solo_fields):
        pending = build("web-dev", solo_fields)

        assert pending.event_id == "web-dev"
        assert pending.participant_name == "Asha Verma"
        assert pending.total_amount == catalog.lookup("web-dev").price
        assert pending.team_members is None
        assert pending.game_ids is None

    @pytest.mark.parametrize("amount", [0, 1, 99999, -5])
    def test_client_amount_is_ignored(self, solo_fields, amount):
        pending = build("pycharm", {**solo_fields, "totalAmount": amount})
        assert pending.total_amount == catalog.lookup("pycharm").price

    def test_event_id_in_fields_cannot_override(self, solo_fields):
        pending = build("photo-contest", {**solo_fields, "eventId": "web-dev"})
        assert pending.event_id == "photo-contest"
        assert pending.total_amount == catalog.lookup("photo-contest").price

    def test_unknown_event(self, solo_fields):
        with pytest.raises(RegistrationValidationError) as exc_info:
            build("no-such-event", solo_fields)
        assert error_fields(exc_info) == {"eventId"}

    @pytest.mark.parametrize("field", ["participantName", "email", "phone"])
    def test_required_fields(self, solo_fields, field):
        with pytest.raises(RegistrationValidationError) as exc_info:
            build("web-dev", {**solo_fields, field: "   "})
        assert field in error_fields(exc_info)

    def test_missing_fields_reported_together(self):
        with pytest.raises(RegistrationValidationError) as exc_info:
            build("web-dev", {})
        assert {"participantName", "email", "phone"} <= error_fields(exc_info)

    def test_bad_email(self, solo_fields):
        with pytest.raises(RegistrationValidationError) as exc_info:
            build("web-dev", {**solo_fields, "email": "not-an-email"})
        assert "email" in error_fields(exc_info)

    @pytest.mark.parametrize("phone", ["12345", "98765abcde", "+91 98765 43210 999 999"])
    def test_bad_phone(self, solo_fields, phone):
        with pytest.raises(RegistrationValidationError) as exc_info:
            build("web-dev", {**solo_fields, "phone": phone})
        assert "phone" in error_fields(exc_info)

    def test_phone_separators_stripped(self, solo_fields):
        pending = build("web-dev", {**solo_fields, "phone": "+91 98765-43210"})
        assert pending.phone == "+919876543210"

    def test_blank_college_becomes_none(self, solo_fields):
        pending = build("web-dev", {**solo_fields, "college": ""})
        assert pending.college is None

    @pytest.mark.parametrize("field", ["participantName", "college"])
    @pytest.mark.parametrize("char", ["\x01", "\x0b", "\x1f"])
    def test_control_characters_rejected(self, solo_fields, field, char):
        with pytest.raises(RegistrationValidationError) as exc_info:
            build("web-dev", {**solo_fields, field: f"Asha{char}Verma"})
        assert field in error_fields(exc_info)

    def test_tabs_and_newlines_allowed(self, solo_fields):
        pending = build("web-dev", {**solo_fields, "college": "IIT\tDelhi\nCampus"})
        assert pending.college == "IIT\tDelhi\nCampus"

    def test_snake_case_keys_accepted(self):
        pending = build("web-dev", {
            "participant_name": "Ravi",
            "email": "ravi@example.com",
            "phone": "9123456780",
        })
        assert pending.participant_name == "Ravi"


class TestBuildTeam:
    def test_valid_squad(self, squad_fields):
        pending = build("bgmi-esports", squad_fields)

        assert len(pending.team_members) == catalog.lookup("bgmi-esports").team_size
        assert pending.game_ids[0].game_id == "5123456789"
        assert pending.total_amount == catalog.lookup("bgmi-esports").price

    def test_amount_is_flat_not_per_member(self, squad_fields):
        event = catalog.lookup("bgmi-esports")
        pending = build(event.id, squad_fields)
        assert pending.total_amount == event.price

    @pytest.mark.parametrize("delta", [-1, 1])
    def test_wrong_team_size(self, squad_fields, delta):
        event = catalog.lookup("bgmi-esports")
        members = squad_fields["teamMembers"]
        if delta < 0:
            members = members[:delta]
        else:
            members = members + [{"name": "Extra", "email": "extra@example.com", "phone": "9000000000"}]
        assert len(members) == event.team_size + delta

        with pytest.raises(RegistrationValidationError) as exc_info:
            build(event.id, {**squad_fields, "teamMembers": members})
        assert "teamMembers" in error_fields(exc_info)

    def test_every_team_event_enforces_exact_size(self, solo_fields):
        for event in catalog.list_events():
            if not event.requires_team:
                continue
            with pytest.raises(RegistrationValidationError):
                build(event.id, {**solo_fields, "teamMembers": []})

    def test_team_member_needs_contact(self, squad_fields):
        members = [dict(m) for m in squad_fields["teamMembers"]]
        members[0]["email"] = ""
        with pytest.raises(RegistrationValidationError) as exc_info:
            build("bgmi-esports", {**squad_fields, "teamMembers": members})
        assert "teamMembers.0.email" in error_fields(exc_info)

    def test_game_ids_required(self, squad_fields):
        with pytest.raises(RegistrationValidationError) as exc_info:
            build("bgmi-esports", {**squad_fields, "gameIds": []})
        assert error_fields(exc_info) == {"gameIds"}

    def test_game_id_needs_player_and_id(self, squad_fields):
        with pytest.raises(RegistrationValidationError) as exc_info:
            build("bgmi-esports", {**squad_fields, "gameIds": [{"playerName": "Asha"}]})
        assert "gameIds.0.gameId" in error_fields(exc_info)

    def test_control_characters_rejected_in_nested_entries(self, squad_fields):
        members = [dict(m) for m in squad_fields["teamMembers"]]
        members[0]["name"] = "Ravi\x00"
        games = [dict(g) for g in squad_fields["gameIds"]]
        games[0]["gameId"] = "512\x07"
        with pytest.raises(RegistrationValidationError) as exc_info:
            build("bgmi-esports", {**squad_fields, "teamMembers": members, "gameIds": games})
        assert {"teamMembers.0.name", "gameIds.0.gameId"} <= error_fields(exc_info)

    def test_team_fields_dropped_for_solo_events(self, squad_fields):
        pending = build("web-dev", squad_fields)
        assert pending.team_members is None
        assert pending.game_ids is None
