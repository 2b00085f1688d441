# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-24
# Description: test_search_service.py
# -----------------------------------------------------------------------------
from datetime import timedelta

import numpy as np
import pytest

from embedding.EmbeddingErrors import InvalidInputError, ProviderError
from records.CRMRecord import Contact, Deal, Lead, RecordType, utc_now
from services.CRMSearchService import SEARCH_TYPES, CRMSearchService


def _seed_crm(repo, owner_id="u1"):
    repo.save_record(Deal(id="d-ent", owner_id=owner_id, title="Enterprise Software License", company="Acme",
                          stage="proposal", value=120000))
    repo.save_record(Deal(id="d-chairs", owner_id=owner_id, title="Office chairs refurbishment",
                          company="Furnish Co", stage="won", value=3000))
    repo.save_record(Deal(id="d-cater", owner_id=owner_id, title="Catering for summer party",
                          company="Food Inc"))
    repo.save_record(Contact(id="c-cto", owner_id=owner_id, name="Jane Roe", company="Acme", title="CTO",
                             persona="Enterprise software buyer", email="jane@acme.test"))
    repo.save_record(Contact(id="c-chef", owner_id=owner_id, name="Sam Cook", company="Food Inc",
                             title="Head chef"))
    repo.save_record(Lead(id="l-dev", owner_id=owner_id, name="Max Byte", company="DevShop",
                          source="webinar", title="Software engineer"))


def test_enterprise_software_scenario(repo, backfill, search):
    _seed_crm(repo)
    backfill.backfill_all("u1")

    results = search.search("enterprise software", SEARCH_TYPES["all"], 5, "u1")

    assert len(results) == 5
    assert {r.record_id for r in results[:2]} == {"d-ent", "c-cto"}
    sims = [r.similarity for r in results]
    assert sims == sorted(sims, reverse=True)
    assert all(0.0 <= s <= 1.0 for s in sims)

    top_deal = next(r for r in results if r.record_id == "d-ent")
    assert top_deal.record_type == RecordType.DEAL
    assert top_deal.title == "Enterprise Software License"
    assert top_deal.company == "Acme"
    assert top_deal.value == 120000
    assert top_deal.created_at is not None


def test_max_results_caps_merged_list(repo, backfill, search):
    for i in range(8):
        repo.save_record(Deal(id=f"d{i}", owner_id="u1", title=f"Renewal {i}"))
        repo.save_record(Contact(id=f"c{i}", owner_id="u1", name=f"Renewal contact {i}"))
    backfill.backfill_all("u1")

    results = search.search("renewal", [RecordType.DEAL, RecordType.CONTACT], 5, "u1")

    assert len(results) == 5
    assert [r.similarity for r in results] == sorted((r.similarity for r in results), reverse=True)


def test_type_without_embeddings_contributes_nothing(repo, backfill, search):
    repo.save_record(Deal(id="d1", owner_id="u1", title="Alpha"))
    backfill.backfill(RecordType.DEAL, "u1")

    assert search.search("alpha", ["leads"], 10, "u1") == []
    results = search.search("alpha", ["leads", "deals"], 10, "u1")
    assert [r.record_id for r in results] == ["d1"]


def test_search_is_owner_scoped(repo, backfill, search):
    _seed_crm(repo, owner_id="u1")
    repo.save_record(Deal(id="theirs", owner_id="u2", title="Enterprise Software License"))
    backfill.backfill_all("u1")
    backfill.backfill_all("u2")

    ids = {r.record_id for r in search.search("enterprise software", SEARCH_TYPES["all"], 50, "u1")}
    assert "theirs" not in ids
    assert {r.record_id for r in search.search("enterprise software", ["deals"], 50, "u2")} == {"theirs"}


def test_vanished_records_are_dropped(repo, backfill, search):
    repo.save_record(Deal(id="d1", owner_id="u1", title="Alpha"))
    repo.save_record(Deal(id="d2", owner_id="u1", title="Alpha two"))
    backfill.backfill(RecordType.DEAL, "u1")

    repo.delete_record(RecordType.DEAL, "d1")

    assert [r.record_id for r in search.search("alpha", ["deals"], 10, "u1")] == ["d2"]


class _FixedEmbedder:
    def __init__(self, vec):
        self.vec = np.asarray(vec, dtype=np.float32)

    def embed(self, text):
        return self.vec


def test_ties_keep_type_order_then_newest_first(repo, store):
    now = utc_now()
    repo.save_record(Deal(id="d-old", owner_id="u1", title="A", created_at=now - timedelta(days=2)))
    repo.save_record(Deal(id="d-new", owner_id="u1", title="B", created_at=now - timedelta(days=1)))
    repo.save_record(Contact(id="c-1", owner_id="u1", name="C", created_at=now - timedelta(days=9)))

    vec = np.array([1.0, 0.0, 0.0], dtype=np.float32)
    for rt, rid in ((RecordType.DEAL, "d-old"), (RecordType.DEAL, "d-new"), (RecordType.CONTACT, "c-1")):
        store.upsert(rt, rid, vec, "h", owner_id="u1")

    svc = CRMSearchService(embedder=_FixedEmbedder(vec), store=store, repository=repo)

    results = svc.search("anything", ["contacts", "deals"], 10, "u1")
    assert [r.record_id for r in results] == ["c-1", "d-new", "d-old"]

    results = svc.search("anything", ["deals", "contacts"], 10, "u1")
    assert [r.record_id for r in results] == ["d-new", "d-old", "c-1"]



def test_tie_at_the_cut_keeps_the_newest(repo, store):
    now = utc_now()
    repo.save_record(Deal(id="d-old", owner_id="u1", title="A", created_at=now - timedelta(days=2)))
    repo.save_record(Deal(id="d-mid", owner_id="u1", title="B", created_at=now - timedelta(days=1, hours=12)))
    repo.save_record(Deal(id="d-new", owner_id="u1", title="C", created_at=now - timedelta(days=1)))

    vec = np.array([1.0, 0.0, 0.0], dtype=np.float32)
    # oldest written first, so index order alone would rank it first
    for rid in ("d-old", "d-mid", "d-new"):
        store.upsert(RecordType.DEAL, rid, vec, "h", owner_id="u1")

    svc = CRMSearchService(embedder=_FixedEmbedder(vec), store=store, repository=repo)

    assert [r.record_id for r in svc.search("q", ["deals"], 1, "u1")] == ["d-new"]
    assert [r.record_id for r in svc.search("q", ["deals"], 2, "u1")] == ["d-new", "d-mid"]

@pytest.mark.parametrize("max_results", [0, -1, 51])
def test_max_results_out_of_range_is_invalid(search, max_results):
    with pytest.raises(InvalidInputError):
        search.search("x", ["deals"], max_results, "u1")


def test_empty_query_and_unknown_type_are_invalid(search):
    with pytest.raises(InvalidInputError):
        search.search("   ", ["deals"], 5, "u1")
    with pytest.raises(InvalidInputError):
        search.search_request("x", search_type="invoices", max_results=5, owner_id="u1")


def test_provider_error_reaches_caller(search, embedder):
    embedder.failures.append(ProviderError("down", status=503))
    with pytest.raises(ProviderError):
        search.search("x", ["deals"], 5, "u1")


def test_search_request_summary(repo, backfill, search):
    _seed_crm(repo)
    backfill.backfill_all("u1")

    out = search.search_request("enterprise software", search_type="activities", max_results=3, owner_id="u1")

    assert out.total_results == len(out.results) == 3
    assert out.search_time_ms >= 0
    assert out.average_similarity == pytest.approx(sum(r.similarity for r in out.results) / 3)

    empty = search.search_request("enterprise software", search_type="leads", max_results=3, owner_id="nobody")
    assert empty.results == []
    assert empty.average_similarity == 0.0
