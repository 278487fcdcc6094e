from datetime import datetime

import pytest

from app.core.lead_analyzer import (
    EXTRACTION_METHOD,
    analyze_lead,
    clean_phone_number,
    compute_confidence,
    create_appointment_from_call,
    next_appointment_slot,
    post_process,
)
from app.storage import appointments_store, calls_store


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("98765-43210", "9876543210"),
        ("+91 98765-43210", "9198765432"),
        ("9876543210", "9876543210"),
        ("6000000000", "6000000000"),
        ("98765 43210 99", "9876543210"),
        ("12345", ""),
        ("5876543210", ""),
        ("0987654321", ""),
        ("", ""),
        (None, ""),
    ],
)
def test_clean_phone_number(raw, expected):
    assert clean_phone_number(raw) == expected


def test_clean_phone_number_truncates_before_checking_prefix():
    # country code first: the first ten digits are "9198765432"
    assert clean_phone_number("919876543210") == "9198765432"


@pytest.mark.parametrize(
    "flags, expected",
    [
        ((False, False, False), 0.3),
        ((True, False, False), 0.7),
        ((False, True, False), 0.7),
        ((False, False, True), 0.5),
        ((True, False, True), 0.9),
        ((True, True, False), 1.0),
        ((True, True, True), 1.0),
    ],
)
def test_compute_confidence(flags, expected):
    assert compute_confidence(*flags) == pytest.approx(expected)


def test_confidence_never_decreases_when_a_field_is_added():
    combos = [(a, b, c) for a in (False, True) for b in (False, True) for c in (False, True)]
    for combo in combos:
        for i in range(3):
            if not combo[i]:
                more = list(combo)
                more[i] = True
                assert compute_confidence(*more) >= compute_confidence(*combo)


def test_post_process_cleans_fields_and_rescored():
    result = post_process(
        {
            "is_lead": True,
            "customer_name": "  Priya ",
            "phone_number": "12345",
            "product_interest": "jeans",
            "customer_need": "samples",
            "is_appointment": True,
            "confidence_score": 0.95,
            "extraction_method": "something-else",
        }
    )
    assert result["customer_name"] == "Priya"
    assert result["phone_number"] == ""
    assert result["confidence_score"] == pytest.approx(0.9)
    assert result["extraction_method"] == EXTRACTION_METHOD


def test_post_process_tolerates_nulls():
    result = post_process({"is_lead": False, "customer_name": None, "phone_number": None, "product_interest": None})
    assert result["confidence_score"] == pytest.approx(0.3)
    assert result["is_appointment"] is False


@pytest.mark.parametrize(
    "now, expected",
    [
        # Wednesday -> Thursday
        (datetime(2024, 6, 12, 15, 45, 12, 345000), datetime(2024, 6, 13, 10, 0)),
        # Friday: tomorrow is Saturday -> Monday
        (datetime(2024, 6, 14, 9, 0), datetime(2024, 6, 17, 10, 0)),
        # Saturday: tomorrow is Sunday -> Monday
        (datetime(2024, 6, 15, 23, 59), datetime(2024, 6, 17, 10, 0)),
        # Sunday -> Monday
        (datetime(2024, 6, 16, 8, 0), datetime(2024, 6, 17, 10, 0)),
    ],
)
def test_next_appointment_slot(now, expected):
    slot = next_appointment_slot(now)
    assert slot == expected
    assert slot.microsecond == 0


def test_auto_create_is_idempotent_per_call(client, run):
    lead = {
        "customer_name": "Priya",
        "phone_number": "9876543210",
        "product_interest": "",
        "customer_need": "",
        "confidence_score": 1.0,
    }
    first = run(create_appointment_from_call, "CA100", lead, now=datetime(2024, 6, 14, 9, 0))
    second = run(create_appointment_from_call, "CA100", dict(lead, customer_name="Someone Else"))

    assert second == first
    assert first["reason"] == "Product Consultation"
    assert first["status"] == "Pending"
    assert first["priority"] == "High Priority"
    assert first["date"] == "2024-06-17T10:00:00.000"
    assert first["time"] == first["date"]
    assert first["notes"] == "Auto-created from call analysis. Customer need: Not specified"
    assert first["id"].startswith("APT_")

    items, total = run(appointments_store.list_appointments)
    assert total == 1


def test_auto_create_without_high_confidence_has_no_priority(client, run):
    lead = {"customer_name": "Ravi", "phone_number": "9123456780", "product_interest": "shirts",
            "customer_need": "bulk order", "confidence_score": 0.8}
    appointment = run(create_appointment_from_call, "CA101", lead)
    assert appointment["priority"] is None
    assert appointment["reason"] == "shirts"
    assert appointment["notes"].endswith("Customer need: bulk order")


def test_analyze_lead_updates_call_and_creates_appointment(client, run, fake_llm):
    run(calls_store.upsert_call, {"sid": "CA200", "status": "completed", "recordings": []})

    result = run(analyze_lead, "CA200", "transcript text", fake_llm)

    assert result["customer_name"] == "Priya Sharma"
    assert result["phone_number"] == "9876543210"
    assert result["confidence_score"] == pytest.approx(1.0)

    call = run(calls_store.get_call, "CA200")
    assert call["is_lead"] is True
    assert call["is_appointment"] is True
    assert call["lead_analysis_at"]
    assert call["lead_details"]["phone_number"] == "9876543210"
    assert call["extraction_method"] == EXTRACTION_METHOD

    appointment = run(appointments_store.find_by_call_sid, "CA200")
    assert appointment["client_name"] == "Priya Sharma"
    assert appointment["reason"] == "black jeans"


def test_analyze_lead_skips_appointment_without_valid_phone(client, run, fake_llm):
    fake_llm.result["phone_number"] = "12345"
    run(calls_store.upsert_call, {"sid": "CA201", "recordings": []})

    result = run(analyze_lead, "CA201", "transcript", fake_llm)

    assert result["phone_number"] == ""
    assert run(appointments_store.find_by_call_sid, "CA201") is None


def test_analyze_lead_failure_leaves_call_unanalyzed(client, run, fake_llm):
    fake_llm.error = ValueError("malformed JSON")
    run(calls_store.upsert_call, {"sid": "CA202", "recordings": []})

    with pytest.raises(ValueError):
        run(analyze_lead, "CA202", "transcript", fake_llm)

    assert run(calls_store.get_call, "CA202")["lead_analysis_at"] is None


def test_post_process_accepts_loose_model_output():
    result = post_process(
        {
            "is_lead": None,
            "customer_name": None,
            "phone_number": 9876543210,
            "product_interest": ["jeans", "shirts"],
            "customer_need": None,
            "is_appointment": None,
            "confidence_score": None,
            "extraction_method": None,
        }
    )
    assert result["is_lead"] is False
    assert result["is_appointment"] is False
    assert result["customer_name"] == ""
    assert result["phone_number"] == "9876543210"
    assert result["product_interest"] == "jeans, shirts"
    assert result["confidence_score"] == pytest.approx(0.9)


def test_post_process_reads_string_flags():
    result = post_process({"is_lead": "true", "is_appointment": "false", "confidence_score": "high"})
    assert result["is_lead"] is True
    assert result["is_appointment"] is False


def test_analyze_lead_endpoint_tolerates_null_flags(client, run, fake_llm):
    fake_llm.result.update({"is_appointment": None, "confidence_score": None, "customer_need": None})
    run(calls_store.upsert_call, {"sid": "CA203", "recordings": []})

    resp = client.post("/api/analyze-lead", json={"callSid": "CA203", "transcription": "transcript"})

    assert resp.status_code == 200
    assert resp.json()["is_appointment"] is False
    assert run(calls_store.get_call, "CA203")["lead_analysis_at"]
    assert run(appointments_store.find_by_call_sid, "CA203") is None
