"""
Tests for draft and published storage and the questionnaire library.
"""

import json

import pytest
from qstudio.errors import RecordIdError
from qstudio.examples import build_example_it_request
from qstudio.model import Questionnaire
from qstudio.storage import (
    DraftService,
    InMemoryStore,
    JsonFileStore,
    PublishedService,
    QuestionnaireLibrary,
    open_library,
)


@pytest.fixture
def drafts():
    return DraftService(InMemoryStore())


@pytest.fixture
def published():
    return PublishedService(InMemoryStore())


@pytest.fixture
def library(drafts, published):
    return QuestionnaireLibrary(drafts, published)


# =============================================================================
# Stores
# =============================================================================

def test_in_memory_store_crud():
    store = InMemoryStore()
    store.save("a", {"x": 1})
    store.save("b", {"x": 2})
    assert list(store.load_all()) == ["a", "b"]
    assert store.find_by_id("a") == {"x": 1}
    assert store.delete("a") is True
    assert store.delete("a") is False
    assert store.find_by_id("a") is None


def test_json_file_store_writes_one_file_per_record(tmp_path):
    store = JsonFileStore(tmp_path / "drafts")
    store.save("draft-1", {"id": "draft-1"})
    path = tmp_path / "drafts" / "draft-1.json"
    assert path.exists()
    assert json.loads(path.read_text(encoding="utf-8")) == {"id": "draft-1"}

    reopened = JsonFileStore(tmp_path / "drafts")
    assert reopened.find_by_id("draft-1") == {"id": "draft-1"}
    assert reopened.delete("draft-1") is True
    assert not path.exists()


def test_json_file_store_skips_corrupt_files(tmp_path):
    store = JsonFileStore(tmp_path)
    store.save("good", {"ok": True})
    (tmp_path / "bad.json").write_text("{broken", encoding="utf-8")
    assert store.load_all() == {"good": {"ok": True}}
    assert store.find_by_id("bad") is None


def test_json_file_store_rejects_ids_outside_base_dir(tmp_path):
    store = JsonFileStore(tmp_path / "drafts")
    for bad_id in ("../escape", "nested/draft", "..", ""):
        with pytest.raises(RecordIdError):
            store.save(bad_id, {"id": bad_id})
        assert store.find_by_id(bad_id) is None
        assert store.delete(bad_id) is False
    assert not (tmp_path / "escape.json").exists()


def test_save_draft_rejects_path_like_id(tmp_path):
    drafts = DraftService(JsonFileStore(tmp_path / "drafts"))
    with pytest.raises(RecordIdError):
        drafts.save(Questionnaire(name="Q"), existing_id="../outside")
    assert not (tmp_path / "outside.json").exists()


@pytest.mark.parametrize(
    "record",
    [
        {"id": "draft-bad"},
        {"id": "draft-bad", "questionnaire": {"pages": [{"name": "no id"}]}},
        {"id": "draft-bad", "questionnaire": {"name": 7, "pages": []}},
        ["not", "a", "draft"],
    ],
)
def test_malformed_draft_records_are_skipped(tmp_path, record):
    library = open_library(tmp_path)
    good, _ = library.drafts.save(Questionnaire(name="Good"))
    (tmp_path / "drafts" / "draft-bad.json").write_text(json.dumps(record), encoding="utf-8")

    assert [d.id for d in library.drafts.load_all()] == [good.id]
    assert library.drafts.find_by_id("draft-bad") is None
    assert library.from_name("anything").found is False
    assert library.from_name("good").id == good.id

    result = library.from_id("draft-bad")
    assert result.found is False
    assert result.message == "Questionnaire not found with ID: draft-bad"
    assert [e.id for e in library.list_all()] == [good.id]


@pytest.mark.parametrize(
    "record",
    [
        {"questionnaire": {"pages": []}},
        {"metadata": {"id": "published-bad"}, "questionnaire": {"pages": []}},
    ],
)
def test_malformed_published_records_are_skipped(tmp_path, record):
    library = open_library(tmp_path)
    good = library.published.publish(Questionnaire(name="Good"))
    (tmp_path / "published" / "published-bad.json").write_text(json.dumps(record), encoding="utf-8")

    assert [r.metadata.id for r in library.published.load_all()] == [good.metadata.id]
    assert library.from_id("published-bad").found is False
    assert library.from_name("good").source == "published"
    assert [e.id for e in library.list_all()] == [good.metadata.id]


# =============================================================================
# Drafts
# =============================================================================

def test_save_new_draft(drafts):
    questionnaire = build_example_it_request()
    draft, is_new = drafts.save(questionnaire)
    assert is_new is True
    assert draft.id.startswith("draft-")
    assert draft.questionnaire.status == "Draft"
    assert draft.stats.question_count == 6
    assert draft.stats.branch_count == 3
    assert draft.saved_at


def test_save_forces_draft_status(drafts):
    draft, _ = drafts.save(Questionnaire(name="Q", status="Active"))
    assert drafts.find_by_id(draft.id).questionnaire.status == "Draft"


def test_update_existing_draft(drafts):
    draft, _ = drafts.save(Questionnaire(name="First"))
    updated, is_new = drafts.save(Questionnaire(name="Second"), existing_id=draft.id)
    assert is_new is False
    assert updated.id == draft.id
    assert [d.questionnaire.name for d in drafts.load_all()] == ["Second"]


def test_draft_survives_round_trip(drafts):
    questionnaire = build_example_it_request()
    draft, _ = drafts.save(questionnaire)
    assert drafts.find_by_id(draft.id).questionnaire == questionnaire


def test_delete_draft(drafts):
    draft, _ = drafts.save(Questionnaire(name="Q"))
    assert drafts.delete(draft.id) is True
    assert drafts.delete(draft.id) is False
    assert drafts.load_all() == []


# =============================================================================
# Published
# =============================================================================

def test_publish_sets_active_and_metadata(published):
    record = published.publish(build_example_it_request())
    assert record.metadata.id.startswith("published-")
    assert record.metadata.status == "Active"
    assert record.metadata.category == "Service Request"
    assert record.metadata.priority == "Medium"
    assert record.metadata.service_catalog == "IT Services"
    assert record.metadata.question_count == 6
    assert record.metadata.answer_set_count == 7
    assert record.metadata.action_count == 2
    assert record.questionnaire.status == "Active"


def test_publish_defaults_for_blank_fields(published):
    record = published.publish(Questionnaire())
    assert record.metadata.name == "Untitled Questionnaire"
    assert record.metadata.service_catalog == "General"


def test_republish_keeps_created_at(published):
    first = published.publish(Questionnaire(name="Q"))
    published.store.save(
        first.metadata.id,
        {**first.to_dict(), "metadata": {**first.metadata.to_dict(), "createdAt": "2020-01-01"}},
    )
    again = published.publish(Questionnaire(name="Q v2"), existing_id=first.metadata.id)
    assert again.metadata.created_at == "2020-01-01"
    assert again.metadata.name == "Q v2"
    assert len(published.load_all()) == 1


# =============================================================================
# Library
# =============================================================================

def test_from_id_prefers_drafts(library, drafts, published):
    drafts.save(Questionnaire(name="Draft copy"), existing_id="shared")
    published.publish(Questionnaire(name="Published copy"), existing_id="shared")

    result = library.from_id("shared")
    assert result.found is True
    assert result.source == "draft"
    assert result.questionnaire.name == "Draft copy"


def test_from_id_falls_back_to_published(library, published):
    record = published.publish(Questionnaire(name="Only published"))
    result = library.from_id(record.metadata.id)
    assert result.source == "published"
    assert result.id == record.metadata.id


def test_from_id_not_found(library):
    result = library.from_id("nope")
    assert result.found is False
    assert result.questionnaire is None
    assert result.message == "Questionnaire not found with ID: nope"


def test_from_name_is_case_insensitive_and_prefers_published(library, drafts, published):
    drafts.save(Questionnaire(name="Onboarding"))
    record = published.publish(Questionnaire(name="  ONBOARDING "))

    result = library.from_name("onboarding")
    assert result.found is True
    assert result.source == "published"
    assert result.id == record.metadata.id


def test_from_name_falls_back_to_drafts(library, drafts):
    draft, _ = drafts.save(Questionnaire(name="Exit Survey"))
    result = library.from_name(" exit survey ")
    assert result.source == "draft"
    assert result.id == draft.id


def test_from_name_not_found(library):
    assert library.from_name("Missing").message == "Questionnaire not found with name: Missing"


def test_list_all_published_first(library, drafts, published):
    drafts.save(Questionnaire(name="D"))
    published.publish(Questionnaire(name="P"))
    assert [(e.name, e.source) for e in library.list_all()] == [("P", "published"), ("D", "draft")]


def test_open_library_uses_json_files(tmp_path):
    library = open_library(tmp_path)
    draft, _ = library.drafts.save(Questionnaire(name="On disk"))
    assert (tmp_path / "drafts" / f"{draft.id}.json").exists()
    assert open_library(tmp_path).from_id(draft.id).questionnaire.name == "On disk"
