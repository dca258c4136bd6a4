from dataclasses import dataclass

import pytest

from fielded_bm25 import BM25Config, records_to_documents, search_records


@dataclass
class SdkEntry:
    platform: str
    title: str
    file: str
    description: str | None = None


@pytest.fixture
def links():
    return [
        {"title": "Push Notification Setup", "url": "/docs/push", "description": "Send pushes"},
        {"title": "SMS Campaigns", "url": "/docs/sms"},
        {"title": "Push Troubleshooting", "url": "/docs/push-debug", "description": None},
    ]


@pytest.fixture
def sdk_entries():
    return [
        SdkEntry("ios", "Notification Service", "NotificationService.swift", "Handles push notification lifecycle"),
        SdkEntry("android", "Event Tracker", "EventTracker.kt"),
        SdkEntry("flutter", "Push Handler", "push_handler.dart", "Routes notification taps"),
    ]


def test_records_to_documents(links):
    docs = records_to_documents(links, ["title", "description"])
    assert [doc.id for doc in docs] == ["0", "1", "2"]
    assert docs[1].fields == {"title": "SMS Campaigns", "description": ""}
    assert docs[2].fields["description"] == ""


def test_attribute_records(sdk_entries):
    docs = records_to_documents(sdk_entries, ["title", "platform", "missing"])
    assert docs[0].fields == {"title": "Notification Service", "platform": "ios", "missing": ""}


def test_search_mapping_records(links):
    results = search_records(
        links, "push setup", ["title", "description", "url"], BM25Config.preset("docs")
    )
    assert results[0] is links[0]
    assert links[1] not in results


def test_search_attribute_records(sdk_entries):
    results = search_records(
        sdk_entries,
        "notification",
        ["title", "description", "file", "platform"],
        BM25Config.preset("sdk"),
        max_results=1,
    )
    assert results == [sdk_entries[0]]


def test_no_records():
    assert search_records([], "push", ["title"]) == []


def test_no_match(links):
    assert search_records(links, "webhook", ["title", "url"]) == []


def test_mapping_config(links):
    results = search_records(links, "sms", ["title"], {"field_weights": {"title": 2.0}})
    assert results == [links[1]]
