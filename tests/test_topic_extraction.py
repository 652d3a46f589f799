"""Tests for topic extraction and mention counting."""

from app.core.config import get_settings
from app.core.topic_extraction import (
    STOP_WORDS,
    Tokenizer,
    configured_stop_words,
    count_mentions,
    extract_topics,
    load_stop_words_file,
)


def test_extract_topics_filters_stop_words_and_short_tokens():
    topics = extract_topics("The new Dashboard export feature, with PDF support.")
    assert topics == ["dashboard", "export"]


def test_extract_topics_dedupes_in_first_seen_order():
    topics = extract_topics("webhooks scheduling webhooks dashboards scheduling")
    assert topics == ["webhooks", "scheduling", "dashboards"]


def test_extract_topics_respects_max_topics():
    text = " ".join(f"topic{i}" for i in range(40))
    assert len(extract_topics(text, max_topics=15)) == 15
    assert extract_topics(text, max_topics=0) == []


def test_extract_topics_empty_text():
    assert extract_topics("") == []
    assert extract_topics("   \n ") == []


def test_extract_topics_only_stop_words():
    assert extract_topics("the release notes have been updated") == []


def test_count_mentions_is_case_insensitive_and_word_bounded():
    text = "Export now. EXPORT later. Exporting is different. export!"
    assert count_mentions(text, "export") == 3


def test_count_mentions_treats_topic_literally():
    assert count_mentions("c++ support (beta)", "(beta") == 0
    assert count_mentions("", "export") == 0
    assert count_mentions("export", "") == 0


def test_tokenizer_custom_stop_words():
    tokenizer = Tokenizer(stop_words=frozenset({"webhooks"}))
    assert extract_topics("webhooks scheduling", tokenizer=tokenizer) == ["scheduling"]


def test_tokenizer_normalize_strips_punctuation():
    assert Tokenizer().normalize("Hello, World!") == "hello world"


def test_extra_stop_words_from_settings(monkeypatch):
    monkeypatch.setenv("TOPIC_EXTRA_STOP_WORDS", "Dashboard, webhooks")
    get_settings.cache_clear()
    configured_stop_words.cache_clear()

    words = configured_stop_words()
    assert {"dashboard", "webhooks"} <= words
    assert STOP_WORDS <= words
    assert extract_topics("dashboard webhooks scheduling") == ["scheduling"]


def test_stop_words_file(tmp_path, monkeypatch):
    path = tmp_path / "stop_words.txt"
    path.write_text("# product names\nAcme\n\nwidget  # inline comment\n", encoding="utf-8")

    assert load_stop_words_file(path) == frozenset({"acme", "widget"})

    monkeypatch.setenv("TOPIC_STOP_WORDS_FILE", str(path))
    get_settings.cache_clear()
    configured_stop_words.cache_clear()
    assert extract_topics("acme widget scheduling") == ["scheduling"]


def test_missing_stop_words_file_falls_back_to_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("TOPIC_STOP_WORDS_FILE", str(tmp_path / "missing.txt"))
    get_settings.cache_clear()
    configured_stop_words.cache_clear()
    assert configured_stop_words() == STOP_WORDS


def test_extract_topics_is_idempotent_on_its_output():
    topics = extract_topics("Scheduling: Webhooks now support scheduling, retries and webhooks!")
    assert extract_topics(" ".join(topics)) == topics
