"""Tests for the RSS feed renderer."""

from datetime import datetime, timezone
import os
import sys
import xml.etree.ElementTree as ET

import pytest
from pydantic import ValidationError

# Ensure the project root is on the import path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from feeds.rss import absolute_image_url, build_item, format_location, render_rss
from ingest.schemas import Address, Event

ATOM = "{http://www.w3.org/2005/Atom}"
NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)
REQUEST_URL = "http://testserver/rss?api-key=k&timeRange=week"

FULL_EVENT = {
    "id": "abc",
    "title": {"en": 'Jazz & "Blues" <Night>', "fr": "Soirée jazz"},
    "description": {
        "fr": "<style>p { margin: 0 }</style><script>alert(1)</script><p>Bonsoir & ]]> bye</p>",
    },
    "dates": [{"from": "2024-03-05T19:00:00.000Z"}],
    "venues": [
        {
            "location": {
                "address": {
                    "number": "12",
                    "street": "Rue Neuve",
                    "postcode": 1234,
                    "town": "Luxembourg",
                    "country": "LU",
                }
            }
        }
    ],
    "pictures": [{"previews": {"media": {"url": "/images/a.jpg"}}, "alt": "Stage"}],
    "categories": ["music"],
    "tags": ["jazz", "R&B"],
    "unknownField": {"ignored": True},
}

SPARSE_EVENT = {
    "id": "bare",
    "title": {},
    "description": {},
    "dates": [],
    "venues": [],
    "pictures": [],
    "categories": [],
    "tags": [],
}


def _parse(rss: str) -> ET.Element:
    return ET.fromstring(rss.encode("utf-8"))


def _items(rss: str):
    return _parse(rss).find("channel").findall("item")


def test_empty_feed_is_well_formed():
    root = _parse(render_rss({"records": []}, REQUEST_URL, now=NOW))
    assert root.tag == "rss"
    assert root.get("version") == "2.0"
    channel = root.find("channel")
    assert channel.findtext("title") == "Events and experiences"
    assert channel.findtext("link") == "https://echo.lu"
    assert channel.findtext("description") == "Events and experiences"
    assert channel.findtext("language") == "en"
    assert channel.findtext("lastBuildDate") == "Sun, 10 Mar 2024 12:00:00 GMT"
    assert channel.findall("item") == []


def test_self_link_is_escaped_request_url():
    rss = render_rss({"records": []}, REQUEST_URL, now=NOW)
    assert "api-key=k&amp;timeRange=week" in rss
    link = _parse(rss).find("channel").find(f"{ATOM}link")
    assert link.get("href") == REQUEST_URL
    assert link.get("rel") == "self"
    assert link.get("type") == "application/rss+xml"


def test_full_event_item():
    rss = render_rss({"records": [FULL_EVENT]}, REQUEST_URL, now=NOW)
    assert "<title>Jazz &amp; &quot;Blues&quot; &lt;Night&gt;</title>" in rss
    assert "<category>R&amp;B</category>" in rss

    (item,) = _items(rss)
    assert item.findtext("title") == 'Jazz & "Blues" <Night>'
    assert item.findtext("link") == "https://www.echo.lu/en/experiences/abc"
    assert item.findtext("guid") == "https://www.echo.lu/en/experiences/abc"
    assert item.findtext("pubDate") == "Tue, 05 Mar 2024 19:00:00 GMT"
    assert item.findtext("description") == " alert(1)<p>Bonsoir & ]]> bye</p> "
    enclosure = item.find("enclosure")
    assert enclosure.get("url") == "https://echo.lu/images/a.jpg"
    assert enclosure.get("type") == "image/jpeg"
    assert enclosure.get("length") == "0"
    assert [c.text for c in item.findall("category")] == ["jazz", "R&B"]


def test_sparse_event_falls_back():
    (item,) = _items(render_rss({"records": [SPARSE_EVENT]}, REQUEST_URL, now=NOW))
    assert item.findtext("title") == "Event"
    assert item.findtext("description").strip() == ""
    assert item.findtext("pubDate") == "Sun, 10 Mar 2024 12:00:00 GMT"
    assert item.find("enclosure") is None
    assert item.findall("category") == []


def test_record_with_only_an_id_still_renders():
    (item,) = _items(render_rss({"records": [{"id": "min", "title": None}]}, REQUEST_URL, now=NOW))
    assert item.findtext("title") == "Event"
    assert item.findtext("guid").endswith("/min")


def test_records_sorted_newest_first_with_undated_as_now():
    records = [
        {"id": "march", "dates": [{"from": "2024-03-05T19:00:00Z"}]},
        {"id": "undated", "dates": []},
        {"id": "april", "dates": [{"from": "2024-04-01T10:00:00Z"}]},
    ]
    items = _items(render_rss({"records": records}, REQUEST_URL, now=NOW))
    assert [i.findtext("guid").rsplit("/", 1)[1] for i in items] == ["april", "undated", "march"]


def test_malformed_date_uses_render_time():
    records = [{"id": "odd", "dates": [{"from": "next tuesday-ish"}]}]
    (item,) = _items(render_rss({"records": records}, REQUEST_URL, now=NOW))
    assert item.findtext("pubDate") == "Sun, 10 Mar 2024 12:00:00 GMT"


def test_title_language_fallback():
    event = Event.model_validate({"id": "1", "title": {"en": "", "fr": "", "de": "Abend"}})
    assert build_item(event, NOW).title == "Abend"


def test_description_language_fallback():
    event = Event.model_validate({"id": "1", "description": {"de": "<p>Hallo</p>"}})
    assert build_item(event, NOW).description == "<p>Hallo</p>"


def test_build_item_resolves_location():
    event = Event.model_validate(FULL_EVENT)
    assert build_item(event, NOW).location == "12 Rue Neuve, 1234 Luxembourg"


@pytest.mark.parametrize(
    "address, expected",
    [
        (None, ""),
        (Address(street="Rue Neuve", postcode="1234", town="Luxembourg"), "Rue Neuve, 1234 Luxembourg"),
        (Address(town="Esch"), "Esch"),
        (Address(number="3", street="Grand-Rue"), "3 Grand-Rue"),
    ],
)
def test_format_location_omits_missing_parts(address, expected):
    assert format_location(address) == expected


@pytest.mark.parametrize(
    "url, expected",
    [
        ("", ""),
        ("/media/x.jpg", "https://echo.lu/media/x.jpg"),
        ("https://cdn.example.test/x.jpg", "https://cdn.example.test/x.jpg"),
        ("http://cdn.example.test/x.jpg", "http://cdn.example.test/x.jpg"),
    ],
)
def test_absolute_image_url(url, expected):
    assert absolute_image_url(url) == expected


def test_invalid_payload_raises():
    with pytest.raises(ValidationError):
        render_rss({"message": "Unauthorized"}, REQUEST_URL, now=NOW)


@pytest.mark.parametrize(
    "record",
    [
        {"id": "a", "dates": [{"from": {"x": 1}}]},
        {"id": "a", "dates": [None, {"from": "2024-01-01T00:00:00Z"}]},
        {"id": "a", "dates": "2024-01-01"},
        {"id": "a", "title": "Plain title", "description": ["not", "a", "mapping"]},
        {"id": "a", "title": {"en": {"nested": True}}},
        {"id": "a", "venues": [None], "pictures": ["oops"], "tags": [None, {"x": 1}]},
        {"id": "a", "venues": [{"location": "somewhere"}], "pictures": [{"previews": {"media": 7}}]},
    ],
)
def test_out_of_shape_record_degrades_instead_of_failing(record):
    rss = render_rss({"records": [record, FULL_EVENT]}, REQUEST_URL, now=NOW)
    items = _items(rss)
    assert len(items) == 2
    odd = next(i for i in items if i.findtext("guid").endswith("/a"))
    assert odd.findtext("title") == "Event"
    assert odd.findtext("pubDate") == "Sun, 10 Mar 2024 12:00:00 GMT"
    assert odd.find("enclosure") is None
    assert odd.findall("category") == []


def test_xml_illegal_characters_are_dropped():
    record = {
        "id": "u",
        "title": {"en": "x\uffffy\ud800"},
        "description": {"en": "d\ufffe<p>ok\udfff</p>"},
        "tags": ["t\x01ag"],
    }
    rss = render_rss({"records": [record]}, REQUEST_URL, now=NOW)
    rss.encode("utf-8")
    (item,) = _items(rss)
    assert item.findtext("title") == "xy"
    assert item.findtext("description") == " d<p>ok</p> "
    assert [c.text for c in item.findall("category")] == ["tag"]
