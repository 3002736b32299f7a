"""Unit tests for the event tag parser."""

from datetime import datetime, timedelta, timezone

import pytest

from vodao.event_parser import (
    UNTITLED_EVENT,
    extract_event_data,
    parse_event_tags,
    parse_timestamp,
    strip_tags,
    summarize_tags,
)
from vodao.models.facebook import FacebookEventData


class TestParseEventTags:
    """Test extraction of every tag kind."""

    def test_full_description(self):
        """Test a description using most tags at once."""
        content = (
            "[SITE] Stage régional [STAGE] [CLUB:lanester]\n"
            " Venez nombreux [TARIF:Adulte|20€] [PRIX:Enfant:10] "
            "[SESSION:2025-12-15|14:00-17:00] "
            "[LIEU:Dojo Municipal, 1 rue de Paris, Lyon] [PLACES:40]"
        )

        parsed = parse_event_tags(content)

        assert parsed.should_publish is True
        assert parsed.event_type == "stage"
        assert parsed.club_slugs == ["lanester"]
        assert parsed.is_all_clubs is False
        assert parsed.is_free is False
        assert parsed.max_capacity == 40
        assert [(p.label, p.price_cents) for p in parsed.prices] == [("Adulte", 2000), ("Enfant", 1000)]
        assert len(parsed.sessions) == 1
        assert parsed.sessions[0].date == "2025-12-15"
        assert parsed.sessions[0].start_time == "14:00"
        assert parsed.sessions[0].end_time == "17:00"
        assert parsed.locations[0].name == "Dojo Municipal"
        assert parsed.cleaned_content == "Stage régional\nVenez nombreux"
        assert parsed.warnings == []

    def test_without_tags(self):
        parsed = parse_event_tags("Cours habituel du mardi")

        assert parsed.should_publish is False
        assert parsed.event_type is None
        assert parsed.club_slugs == []
        assert parsed.prices == []
        assert parsed.sessions == []
        assert parsed.max_capacity is None
        assert parsed.cleaned_content == "Cours habituel du mardi"

    def test_tags_are_case_insensitive(self):
        parsed = parse_event_tags("[site] [type:Compétition] [club:Wimille] [prix:15]")

        assert parsed.should_publish is True
        assert parsed.event_type == "competition"
        assert parsed.club_slugs == ["wimille"]
        assert parsed.prices[0].price_cents == 1500

    def test_malformed_tags_are_ignored(self):
        """Test malformed tags neither raise nor produce values."""
        content = "[SITE] [PRIX:abc] [SESSION:pas-une-date|14:00-17:00] [PLACES:beaucoup] [DATE:2025-02-30] [FOO:bar]"

        parsed = parse_event_tags(content)

        assert parsed.should_publish is True
        assert parsed.prices == []
        assert parsed.sessions == []
        assert parsed.max_capacity is None
        assert "[FOO:bar]" in parsed.cleaned_content


class TestPrices:
    """Test price extraction."""

    def test_order_of_appearance(self):
        parsed = parse_event_tags("[PRIX:Enfant:10] [TARIF:Adulte|20] [PRIX:5,50€]")

        assert [(p.label, p.price_cents) for p in parsed.prices] == [
            ("Enfant", 1000),
            ("Adulte", 2000),
            ("Tarif unique", 550),
        ]

    def test_free_replaces_other_prices(self):
        parsed = parse_event_tags("[GRATUIT] [PRIX:Adulte:20]")

        assert parsed.is_free is True
        assert [(p.label, p.price_cents) for p in parsed.prices] == [("Gratuit", 0)]

    def test_zero_price_is_kept(self):
        parsed = parse_event_tags("[PRIX:Licenciés:0]")

        assert [(p.label, p.price_cents) for p in parsed.prices] == [("Licenciés", 0)]
        assert parsed.is_free is False

    def test_eur_suffix(self):
        parsed = parse_event_tags("[PRIX:Adulte:25 EUR]")

        assert parsed.prices[0].price_cents == 2500


class TestSessions:
    """Test session extraction from date and time tags."""

    def test_session_with_notes(self):
        parsed = parse_event_tags("[SESSION:15/12/2025|9h00-12h00|Ceintures noires]")

        session = parsed.sessions[0]
        assert session.date == "2025-12-15"
        assert session.start_time == "09:00"
        assert session.end_time == "12:00"
        assert session.notes == "Ceintures noires"

    def test_date_with_inline_times(self):
        parsed = parse_event_tags("[DATE:2025-12-15:14:00-17:00]")

        session = parsed.sessions[0]
        assert (session.date, session.start_time, session.end_time) == ("2025-12-15", "14:00", "17:00")

    def test_dates_paired_with_schedules(self):
        """Test bare dates take schedules one to one when counts match."""
        parsed = parse_event_tags(
            "[DATE:2025-12-15] [DATE:2025-12-16] [HORAIRE:10:00-12:00] [HORAIRE:14:00-16:00]"
        )

        assert [(s.date, s.start_time, s.end_time) for s in parsed.sessions] == [
            ("2025-12-15", "10:00", "12:00"),
            ("2025-12-16", "14:00", "16:00"),
        ]

    def test_dates_share_single_schedule(self):
        parsed = parse_event_tags("[DATE:2025-12-15] [DATE:2025-12-16] [HORAIRE:10h00]")

        assert [(s.date, s.start_time, s.end_time) for s in parsed.sessions] == [
            ("2025-12-15", "10:00", None),
            ("2025-12-16", "10:00", None),
        ]

    def test_dates_without_matching_schedules(self):
        parsed = parse_event_tags(
            "[DATE:2025-12-15] [DATE:2025-12-16] [DATE:2025-12-17] "
            "[HORAIRE:10:00-12:00] [HORAIRE:14:00-16:00]"
        )

        assert len(parsed.sessions) == 3
        assert all(s.start_time is None for s in parsed.sessions)

    def test_sessions_keep_text_order(self):
        parsed = parse_event_tags("[DATE:2025-12-20:10:00-11:00] [SESSION:2025-12-10|10:00-11:00]")

        assert [s.date for s in parsed.sessions] == ["2025-12-20", "2025-12-10"]


class TestClubsAndConflicts:
    """Test clubs, capacity and conflicting tags."""

    def test_clubs_deduplicated_in_order(self):
        parsed = parse_event_tags("[WIMILLE] [CLUB:lanester] [CLUB:Wimille] [TRÉGUEUX]")

        assert parsed.club_slugs == ["wimille", "lanester", "tregueux"]

    def test_all_clubs(self):
        parsed = parse_event_tags("[TOUS LES CLUBS] [CLUB:lanester]")

        assert parsed.is_all_clubs is True
        assert parsed.club_slugs == ["lanester"]

    def test_first_event_type_wins(self):
        parsed = parse_event_tags("[STAGE] [TYPE:competition] [TYPE:stage]")

        assert parsed.event_type == "stage"
        assert len(parsed.warnings) == 1
        assert "competition" in parsed.warnings[0]

    def test_unknown_type_ignored(self):
        parsed = parse_event_tags("[TYPE:tournoi]")

        assert parsed.event_type is None

    def test_first_capacity_wins(self):
        parsed = parse_event_tags("[PLACES:30] [CAPACITE:50]")

        assert parsed.max_capacity == 30
        assert len(parsed.warnings) == 1

    @pytest.mark.parametrize("content", ["[PLACES:30] [ILLIMITE]", "[PLACES:0]", "[UNLIMITED]"])
    def test_unlimited_capacity(self, content):
        assert parse_event_tags(content).max_capacity is None


class TestStripTags:
    """Test removal of tags from free text."""

    def test_collapses_whitespace_and_blank_lines(self):
        text = "[SITE]  Ligne   un [STAGE]\n\n\n\n  Ligne deux  [PRIX:10]"

        assert strip_tags(text) == "Ligne un\n\nLigne deux"

    def test_keeps_unknown_bracketed_text(self):
        assert strip_tags("Note [VOIR:programme] [SITE]") == "Note [VOIR:programme]"


class TestParseTimestamp:
    """Test Facebook timestamp parsing."""

    def test_iso_with_compact_offset(self):
        parsed = parse_timestamp("2025-12-15T14:00:00+0100")

        assert parsed == datetime(2025, 12, 15, 14, 0, tzinfo=timezone(timedelta(hours=1)))

    def test_iso_with_z(self):
        assert parse_timestamp("2025-12-15T13:00:00Z") == datetime(2025, 12, 15, 13, 0, tzinfo=timezone.utc)

    def test_unix_seconds(self):
        assert parse_timestamp("0") == datetime(1970, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "bientôt", "99999999999999"])
    def test_unparsable(self, value):
        assert parse_timestamp(value) is None


class TestExtractEventData:
    """Test extraction of a whole payload."""

    def test_extract_full_payload(self):
        payload = FacebookEventData.model_validate({
            "id": "123",
            "name": "[SITE] [STAGE] Stage d'hiver",
            "description": "Stage annuel.\n[PRIX:20]",
            "start_time": "2025-12-15T14:00:00+0100",
            "end_time": "2025-12-15T17:00:00+0100",
            "cover": {"source": "https://cdn.example.com/cover.jpg"},
            "place": {
                "name": "Gymnase",
                "location": {"street": "1 rue du Stade", "city": "Lyon", "zip": "69001"},
            },
        })

        extracted = extract_event_data(payload)

        assert extracted.title == "Stage d'hiver"
        assert extracted.description == "Stage annuel."
        assert extracted.start_date.isoformat() == "2025-12-15T14:00:00+01:00"
        assert extracted.end_date.hour == 17
        assert extracted.location == "Gymnase, 1 rue du Stade, Lyon, 69001"
        assert extracted.cover_image_url == "https://cdn.example.com/cover.jpg"
        assert extracted.parsed_tags.should_publish is True
        assert extracted.parsed_tags.event_type == "stage"

    def test_location_tag_wins_over_place(self):
        payload = FacebookEventData(
            id="1",
            name="[SITE] Démo",
            description="[LIEU:Salle Pasteur, 2 rue Pasteur, Wimille]",
            place={"name": "Ailleurs"},
        )

        assert extract_event_data(payload).location == "Salle Pasteur, 2 rue Pasteur, Wimille"

    def test_title_made_only_of_tags(self):
        payload = FacebookEventData(id="1", name="[SITE] [STAGE]", description=None)

        extracted = extract_event_data(payload)

        assert extracted.title == UNTITLED_EVENT
        assert extracted.description is None
        assert extracted.location is None
        assert extracted.cover_image_url is None
        assert extracted.start_date is None

    def test_summarize_tags(self):
        summary = summarize_tags(parse_event_tags("[SITE] [PRIX:10] [CLUB:lanester]"))

        assert summary["publish"] is True
        assert summary["prices"] == 1
        assert summary["clubs"] == ["lanester"]
