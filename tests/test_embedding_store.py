# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-23
# Description: test_embedding_store.py
# -----------------------------------------------------------------------------
import gc
from datetime import timedelta

import numpy as np
import pytest

from embedding.EmbeddingErrors import RecordNotFoundError
from records.CRMRecord import Activity, Contact, Deal, RecordType, utc_now


def _embed_current(store, embedder, rt, record_id, owner_id):
    ctx = store.describe(rt, record_id, owner_id)
    assert store.upsert_if_current(rt, record_id, embedder.embed(ctx.text), ctx.content_hash, owner_id=owner_id)
    return ctx


def test_upsert_then_get_returns_same_vector(store, repo):
    repo.save_record(Deal(id="d1", owner_id="u1", title="Alpha"))
    vec = np.array([0.1, 0.2, 0.3], dtype=np.float32)
    at = utc_now()

    store.upsert(RecordType.DEAL, "d1", vec, "hash-1", at, owner_id="u1")
    got = store.get(RecordType.DEAL, "d1", owner_id="u1")

    assert got is not None
    assert np.allclose(got.vector, vec)
    assert got.content_hash == "hash-1"
    assert got.computed_at == at


def test_upsert_is_full_overwrite(store):
    store.upsert(RecordType.DEAL, "d1", np.ones(3), "h1", owner_id="u1")
    store.upsert(RecordType.DEAL, "d1", np.zeros(3), "h2", owner_id="u1")

    got = store.get(RecordType.DEAL, "d1", owner_id="u1")
    assert got.content_hash == "h2"
    assert np.allclose(got.vector, np.zeros(3))
    assert store.count_embedded(RecordType.DEAL, "u1") == 1


def test_reads_are_owner_scoped(store):
    store.upsert(RecordType.CONTACT, "c1", np.ones(3), "h1", owner_id="u1")

    assert store.get(RecordType.CONTACT, "c1", owner_id="u2") is None
    assert store.delete(RecordType.CONTACT, "c1", owner_id="u2") is False
    assert store.get(RecordType.CONTACT, "c1", owner_id="u1") is not None


def test_upsert_if_current_rejects_superseded_hash(store, repo, embedder):
    repo.save_record(Deal(id="d1", owner_id="u1", title="Alpha"))
    old = store.describe(RecordType.DEAL, "d1", "u1")

    repo.save_record(Deal(id="d1", owner_id="u1", title="Alpha v2"))

    written = store.upsert_if_current(RecordType.DEAL, "d1", embedder.embed(old.text), old.content_hash, owner_id="u1")
    assert written is False
    assert store.get(RecordType.DEAL, "d1", owner_id="u1") is None


def test_upsert_if_current_raises_for_vanished_record(store):
    with pytest.raises(RecordNotFoundError):
        store.upsert_if_current(RecordType.LEAD, "gone", np.ones(3), "h", owner_id="u1")


def test_list_missing_includes_unembedded_in_creation_order(store, repo):
    now = utc_now()
    repo.save_record(Deal(id="b", owner_id="u1", title="B", created_at=now - timedelta(days=2)))
    repo.save_record(Deal(id="a", owner_id="u1", title="A", created_at=now - timedelta(days=2)))
    repo.save_record(Deal(id="c", owner_id="u1", title="C", created_at=now - timedelta(days=3)))
    repo.save_record(Deal(id="x", owner_id="u2", title="Other tenant"))

    assert store.list_missing(RecordType.DEAL, "u1", page_size=10) == ["c", "a", "b"]
    assert store.list_missing(RecordType.DEAL, "u1", page_size=2, offset=1) == ["a", "b"]
    assert store.list_missing(RecordType.DEAL, "u2", page_size=10) == ["x"]


def test_list_missing_excludes_records_matching_stored_fingerprint(store, repo, embedder):
    repo.save_record(Deal(id="d1", owner_id="u1", title="Alpha"))
    repo.save_record(Deal(id="d2", owner_id="u1", title="Beta"))
    _embed_current(store, embedder, RecordType.DEAL, "d1", "u1")

    assert store.list_missing(RecordType.DEAL, "u1", page_size=10) == ["d2"]

    # touching the record without changing composed content is not staleness
    repo.save_record(repo.get_record(RecordType.DEAL, "d1", "u1"))
    assert store.list_missing(RecordType.DEAL, "u1", page_size=10) == ["d2"]


def test_list_missing_flags_record_changed_after_embedding(store, repo, embedder):
    repo.save_record(Contact(id="c1", owner_id="u1", name="Jane"))
    _embed_current(store, embedder, RecordType.CONTACT, "c1", "u1")
    assert store.list_missing(RecordType.CONTACT, "u1", page_size=10) == []

    repo.save_record(Contact(id="c1", owner_id="u1", name="Jane", company="Acme"))
    assert store.list_missing(RecordType.CONTACT, "u1", page_size=10) == ["c1"]


def test_list_missing_flags_new_activity(store, repo, embedder):
    repo.save_record(Deal(id="d1", owner_id="u1", title="Alpha"))
    _embed_current(store, embedder, RecordType.DEAL, "d1", "u1")

    repo.save_activity(Activity(id="a1", owner_id="u1", type="call", description="Intro", deal_id="d1"))
    assert store.list_missing(RecordType.DEAL, "u1", page_size=10) == ["d1"]
    assert store.count_missing(RecordType.DEAL, "u1") == 1


def test_delete_removes_vector(store, repo, embedder):
    repo.save_record(Deal(id="d1", owner_id="u1", title="Alpha"))
    _embed_current(store, embedder, RecordType.DEAL, "d1", "u1")

    assert store.delete(RecordType.DEAL, "d1", owner_id="u1") is True
    assert store.get(RecordType.DEAL, "d1", owner_id="u1") is None
    assert store.delete(RecordType.DEAL, "d1", owner_id="u1") is False


def test_describe_reports_currency(store, repo, embedder):
    repo.save_record(Deal(id="d1", owner_id="u1", title="Alpha"))
    assert store.describe(RecordType.DEAL, "d1", "u1").is_current is False

    _embed_current(store, embedder, RecordType.DEAL, "d1", "u1")
    ctx = store.describe(RecordType.DEAL, "d1", "u1")
    assert ctx.is_current is True
    assert ctx.text.startswith("Deal: Alpha\n")


def test_list_missing_tolerates_app_clock_ahead_of_database(store, repo, embedder):
    repo.save_record(Contact(id="c1", owner_id="u1", name="Jane"))
    ctx = store.describe(RecordType.CONTACT, "c1", "u1")
    # app clock one minute ahead of the database clock
    ahead = utc_now() + timedelta(seconds=60)
    store.upsert(RecordType.CONTACT, "c1", embedder.embed(ctx.text), ctx.content_hash, ahead, owner_id="u1")

    repo.save_record(Contact(id="c1", owner_id="u1", name="Jane", company="Acme"))

    assert store.list_missing(RecordType.CONTACT, "u1", page_size=10) == ["c1"]


def test_record_locks_are_not_retained(store, repo, embedder):
    repo.save_record(Deal(id="d1", owner_id="u1", title="Alpha"))
    _embed_current(store, embedder, RecordType.DEAL, "d1", "u1")
    store.delete(RecordType.DEAL, "d1", owner_id="u1")

    gc.collect()
    assert len(store._record_locks) == 0
