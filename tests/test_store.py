"""Tests for document stores, record decoding and roster seeding."""

import json

from dispatch.ledger.booking_ledger import BookingLedger
from dispatch.ledger.roster import Roster
from dispatch.ledger.store import (
    BOOKINGS_KEY,
    STAFF_KEY,
    InMemoryStore,
    JsonFileStore,
    decode_bookings,
    decode_staff,
    encode,
)
from dispatch.schemas.booking_schema import JobStatus, TeamType
from tests.conftest import make_booking, make_staff


def _raw_booking(**fields) -> dict:
    raw = {
        "id": "b1",
        "name": "Jo Citizen",
        "phone": "0412 345 678",
        "service_type": "Repair",
        "team_type": "Repair",
        "preferred_date_time": "2025-05-20 09:00",
        "created_at": "2025-05-01T09:00:00+10:00",
    }
    raw.update(fields)
    return raw


class TestDecodeBookings:
    def test_missing_collections_defaulted(self):
        booking = decode_bookings([_raw_booking()])[0]
        assert booking.line_items == []
        assert booking.payments == []
        assert booking.internal_notes == []
        assert booking.is_invoiced is False

    def test_null_collections_defaulted(self):
        booking = decode_bookings([_raw_booking(payments=None, assigned_staff_ids=None)])[0]
        assert booking.payments == []
        assert booking.assigned_staff_ids == []

    def test_confirmed_with_staff_read_as_assigned(self):
        booking = decode_bookings([_raw_booking(status="Confirmed", assigned_staff_ids=["s1"])])[0]
        assert booking.status == JobStatus.ASSIGNED

    def test_confirmed_without_staff_read_as_new(self):
        booking = decode_bookings([_raw_booking(status="Confirmed")])[0]
        assert booking.status == JobStatus.NEW

    def test_only_non_objects_skipped(self):
        docs = [_raw_booking(), "garbage", _raw_booking(id="b2", team_type="Plumbing")]
        bookings = decode_bookings(docs)
        assert [b.id for b in bookings] == ["b1", "b2"]
        assert bookings[1].team_type == TeamType.REPAIR

    def test_legacy_record_fields_defaulted(self):
        raw = _raw_booking(id="b2", status="Pending")
        for name in ("created_at", "phone", "service_type", "team_type"):
            del raw[name]
        booking = decode_bookings([raw])[0]
        assert booking.status == JobStatus.NEW
        assert booking.phone == "N/A"
        assert booking.service_type == "Repair / Maintenance"
        assert booking.team_type == TeamType.REPAIR
        assert booking.created_at

    def test_unknown_status_with_staff_read_as_assigned(self):
        booking = decode_bookings([_raw_booking(status=["?"], assigned_staff_ids=["s1"])])[0]
        assert booking.status == JobStatus.ASSIGNED

    def test_malformed_payment_dropped_record_kept(self):
        good = {"id": "p1", "amount": 50, "date": "2025-05-20", "method": "Card"}
        booking = decode_bookings([_raw_booking(payments=[good, {"amount": "lots"}])])[0]
        assert [p.id for p in booking.payments] == ["p1"]

    def test_malformed_optional_field_cleared(self):
        booking = decode_bookings([_raw_booking(labor_hours="all day")])[0]
        assert booking.id == "b1"
        assert booking.labor_hours is None

    def test_legacy_record_survives_next_save(self):
        legacy = _raw_booking(id="b2", status="Pending")
        del legacy["created_at"]
        store = InMemoryStore({BOOKINGS_KEY: [_raw_booking(), legacy]})
        ledger = BookingLedger(store)
        ledger.create({"name": "Jo", "address": "1 Main St",
                       "preferred_date_time": "2025-05-21 09:00"})
        stored_ids = [doc["id"] for doc in store.load(BOOKINGS_KEY)]
        assert "b1" in stored_ids and "b2" in stored_ids
        assert len(stored_ids) == 3

    def test_encode_round_trips(self):
        booking = make_booking(line_items=[("Call-out fee", 80)], payments=[50])
        assert decode_bookings(encode([booking])) == [booking]


class TestDecodeStaff:
    def test_only_non_objects_skipped(self):
        docs = encode([make_staff("s1")]) + [{"id": "s2"}, 42]
        roster = decode_staff(docs)
        assert [m.id for m in roster] == ["s1", "s2"]
        assert roster[1].name == "s2"
        assert roster[1].team_type == TeamType.REPAIR


class TestInMemoryStore:
    def test_unsaved_key_is_none(self):
        assert InMemoryStore().load("anything") is None

    def test_documents_copied(self):
        store = InMemoryStore()
        docs = [{"id": "x"}]
        store.save_all("k", docs)
        docs[0]["id"] = "changed"
        assert store.load("k") == [{"id": "x"}]

    def test_initial_documents(self):
        store = InMemoryStore({BOOKINGS_KEY: [_raw_booking()]})
        assert len(BookingLedger(store).all()) == 1


class TestJsonFileStore:
    def test_round_trip(self, tmp_path):
        store = JsonFileStore(tmp_path / "data")
        store.save_all("k", [{"id": "x"}])
        assert JsonFileStore(tmp_path / "data").load("k") == [{"id": "x"}]

    def test_missing_file_is_none(self, tmp_path):
        assert JsonFileStore(tmp_path).load("k") is None

    def test_corrupt_file_is_empty(self, tmp_path):
        (tmp_path / "k.json").write_text("{not json", encoding="utf-8")
        assert JsonFileStore(tmp_path).load("k") == []
        assert (tmp_path / "k.json.corrupt").read_text(encoding="utf-8") == "{not json"
        assert not (tmp_path / "k.json").exists()

    def test_non_list_document_is_empty(self, tmp_path):
        (tmp_path / "k.json").write_text(json.dumps({"id": "x"}), encoding="utf-8")
        assert JsonFileStore(tmp_path).load("k") == []
        assert (tmp_path / "k.json.corrupt").exists()

    def test_corrupt_file_not_overwritten_by_next_save(self, tmp_path):
        (tmp_path / "k.json").write_text("{not json", encoding="utf-8")
        store = JsonFileStore(tmp_path)
        store.load("k")
        store.save_all("k", [{"id": "x"}])
        assert (tmp_path / "k.json.corrupt").read_text(encoding="utf-8") == "{not json"
        assert store.load("k") == [{"id": "x"}]

    def test_ledger_survives_restart(self, tmp_path):
        ledger = BookingLedger(JsonFileStore(tmp_path))
        booking = ledger.create({"name": "Jo", "address": "1 Main St",
                                 "preferred_date_time": "2025-05-20 09:00"})
        reloaded = BookingLedger(JsonFileStore(tmp_path))
        assert reloaded.require(booking.id).assigned_staff_ids == ["s1"]
        assert (tmp_path / "hvac_bookings.json").exists()


class TestRosterSeeding:
    def test_empty_store_seeded(self, store):
        roster = Roster(store)
        assert [m.id for m in roster.all()] == ["admin1", "s1", "s2"]
        assert len(store.load(STAFF_KEY)) == 3

    def test_existing_roster_not_reseeded(self):
        store = InMemoryStore({STAFF_KEY: encode([make_staff("s9")])})
        assert [m.id for m in Roster(store).all()] == ["s9"]

    def test_empty_list_is_not_reseeded(self):
        store = InMemoryStore({STAFF_KEY: []})
        assert Roster(store).all() == []

    def test_active_technicians_excludes_admin(self, store):
        roster = Roster(store)
        roster.toggle_active("s2")
        assert [m.id for m in roster.active_technicians()] == ["s1"]

    def test_enlist_persists(self, store):
        member = Roster(store).enlist("Ari Fix", TeamType.INSTALLATION)
        assert member.id.startswith("s")
        assert [m.id for m in Roster(store).all()][-1] == member.id
