# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-22
# Description: test_text_composer.py
# -----------------------------------------------------------------------------
import hashlib

from composer.CRMTextComposer import CRMTextComposer, fingerprint, truncate_for_embedding
from records.CRMRecord import Activity, Contact, Deal, Lead


def _deal(**kw) -> Deal:
    base = dict(id="deal-42", owner_id="u1", title="Enterprise License", created_at="2024-01-02T10:00:00Z")
    base.update(kw)
    return Deal(**base)


def test_deal_without_activities_has_placeholders_and_no_activity_section():
    text = CRMTextComposer().compose(_deal(), [])

    assert text == (
        "Deal: Enterprise License\n"
        "Company: N/A\n"
        "Value: 0\n"
        "Stage: N/A\n"
        "Probability: 0%\n"
        "Created At: 2024-01-02\n"
        "Notes: N/A\n"
    )
    assert "Activities:" not in text


def test_deal_optional_fields_rendered_when_present():
    deal = _deal(
        company="Acme",
        value=50000.0,
        stage="proposal",
        probability=60,
        next_step="Send contract",
        close_date="2024-03-31",
        contact_name="Jane Doe",
        contact_id="c-1",
        notes="Big one",
    )
    lines = CRMTextComposer().compose(deal, []).splitlines()

    assert "Value: 50000" in lines
    assert "Probability: 60%" in lines
    assert "Next Step: Send contract" in lines
    assert "Close Date: 2024-03-31" in lines
    assert "Contact: Jane Doe" in lines
    assert "Contact ID: c-1" in lines
    assert lines[-1] == "Notes: Big one"


def test_adding_activity_appends_activity_section():
    composer = CRMTextComposer()
    before = composer.compose(_deal(), [])

    call = Activity(id="a1", owner_id="u1", type="call", description="Intro call", created_at="2024-01-05")
    after = composer.compose(_deal(), [call])

    assert after == before + "\nActivities:\n- [2024-01-05] call: Intro call\n"


def test_activity_order_newest_first_and_input_order_irrelevant():
    a_old = Activity(id="a1", owner_id="u1", type="email", subject="Hello", created_at="2024-01-01")
    a_new = Activity(id="a2", owner_id="u1", type="meeting", description="Demo", notes="went well",
                     created_at="2024-02-01")
    a_tie = Activity(id="a0", owner_id="u1", type="note", created_at="2024-02-01")
    undated = Activity(id="a9", owner_id="u1", type="task", description="Follow up")

    composer = CRMTextComposer()
    t1 = composer.compose(_deal(), [a_old, a_new, a_tie, undated])
    t2 = composer.compose(_deal(), [undated, a_tie, a_new, a_old])

    assert t1 == t2
    section = t1.split("Activities:\n", 1)[1]
    assert section == (
        "- [2024-02-01] note: \n"
        "- [2024-02-01] meeting: Demo\n"
        "  Notes: went well\n"
        "- [2024-01-01] email: Hello\n"
        "- [Unknown date] task: Follow up\n"
    )


def test_contact_custom_fields_sorted_before_tail():
    contact = Contact(
        id="c1",
        owner_id="u1",
        name="Jane",
        company="Acme",
        email="jane@acme.test",
        score=87,
        persona="Economic buyer",
        custom_fields={"zone": "EMEA", "industry": "Software"},
        created_at="2024-01-02",
    )
    lines = CRMTextComposer().compose(contact, []).splitlines()

    assert lines[:8] == [
        "Contact: Jane",
        "Company: Acme",
        "Email: jane@acme.test",
        "Phone: N/A",
        "Title: N/A",
        "Status: N/A",
        "Score: 87",
        "Persona: Economic buyer",
    ]
    assert lines[8:] == ["industry: Software", "zone: EMEA", "Created At: 2024-01-02", "Notes: N/A"]


def test_lead_fields():
    lead = Lead(id="l1", owner_id="u1", name="Bob", source="webinar", custom_fields='{"budget": "10k"}')
    lines = CRMTextComposer().compose(lead, []).splitlines()

    assert lines[0] == "Lead: Bob"
    assert "Lead Source: webinar" in lines
    assert "Score: 0" in lines
    assert not any(line.startswith("Title:") for line in lines)
    assert "budget: 10k" in lines
    assert "Created At: N/A" in lines


def test_dates_are_utc_iso():
    # 23:30 at UTC-05:00 is already the next day in UTC
    deal = _deal(created_at="2024-01-02T23:30:00-05:00")
    assert "Created At: 2024-01-03" in CRMTextComposer().compose(deal, [])


def test_fingerprint_is_sha256_of_text():
    text, h = CRMTextComposer().compose_with_fingerprint(_deal(), [])
    assert h == hashlib.sha256(text.encode("utf-8")).hexdigest()
    assert fingerprint(text) == h
    assert fingerprint(text + " ") != h


def test_truncate_keeps_prefix():
    assert truncate_for_embedding("abcdef", 4) == "abcd"
    assert truncate_for_embedding("abc", 10) == "abc"
    assert truncate_for_embedding("abc", 0) == "abc"
