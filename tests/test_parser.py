"""Parsing, property by property, plus strict/lenient behaviour."""
from __future__ import annotations

from datetime import time, timedelta, timezone

import pytest

from conftest import assert_round_trip, parse_one, vcard
from vcard_codec import VcardParser, iter_cards, parse, parse_loose
from vcard_codec.errors import (
    DelimiterExpected,
    GeoNotQuoted,
    IncorrectToken,
    InvalidClientPidMap,
    InvalidInteger,
    InvalidPid,
    InvalidPropertyValue,
    LabelNotAllowed,
    NoFormattedName,
    NoSex,
    OnlyOnce,
    PrefOutOfRange,
    PropertyError,
    StructuralError,
    TokenExpected,
    TypeNotAllowed,
    UnknownKind,
    UnknownParameterName,
    UnknownPropertyName,
    UnknownSex,
    UnknownValueType,
    UriParse,
    VersionMisplaced,
)
from vcard_codec.model import (
    Card,
    DateAndOrTimeProperty,
    Kind,
    Sex,
    TextProperty,
    UriProperty,
    UtcOffsetProperty,
)
from vcard_codec.parameters import GenericType, Pid, RelatedType, TelephoneType, TzText, ValueType
from vcard_codec.values import Date, DateTime

FN = r"FN:Mr. John Q. Public\, Esq."


# ── Card structure ─────────────────────────────────────────────────────────────

def test_single_card():
    card = parse_one(vcard("FN:Jane Doe"))
    assert card.formatted_name == [TextProperty("Jane Doe")]
    assert card.display_name == "Jane Doe"


def test_bare_lf_line_endings():
    card = parse_one("BEGIN:VCARD\nVERSION:4.0\nFN:Jane Doe\nEND:VCARD")
    assert card.formatted_name[0].value == "Jane Doe"


def test_many_cards_and_blank_lines_between():
    text = "\r\n" + vcard("FN:Jane Doe") + "\r\n\r\n" + vcard("FN:John Doe") + "\r\n"
    cards = parse(text)
    assert [c.display_name for c in cards] == ["Jane Doe", "John Doe"]


def test_version_three_is_tolerated():
    card = parse_one(
        vcard("FN:Jane", "TEL;type=CELL;type=VOICE;type=pref:01234567890", version="3.0")
    )
    tel = card.tel[0]
    assert isinstance(tel, TextProperty)
    assert tel.value == "01234567890"
    assert tel.parameters.types == [TelephoneType.CELL, TelephoneType.VOICE, "pref"]


def test_empty_input():
    with pytest.raises(TokenExpected):
        parse("")


def test_missing_begin():
    with pytest.raises(IncorrectToken):
        parse("VERSION:4.0")


@pytest.mark.parametrize("text", ["BEGIN:VCARD", "BEGIN:VCARD\nVERSION:4.0", "BEGIN:VCARD\nVERSION:4.0\nFN:Jane\n"])
def test_truncated_card(text):
    with pytest.raises(TokenExpected):
        parse(text)


def test_missing_formatted_name():
    with pytest.raises(NoFormattedName):
        parse(vcard("NOTE:nameless"))


def test_blank_line_inside_card_is_structural():
    with pytest.raises(IncorrectToken):
        parse("BEGIN:VCARD\r\nVERSION:4.0\r\nFN:Jane\r\n\r\nEND:VCARD")


def test_missing_property_delimiter():
    with pytest.raises(DelimiterExpected):
        parse(vcard("FN;LANGUAGE=en"))


# ── Escaping and folding ───────────────────────────────────────────────────────

@pytest.mark.parametrize("line, expected", [
    (r"FN:Mr. John Q. Public\, Esq.", "Mr. John Q. Public, Esq."),
    (r"FN:Mr. John Q. Public\; Esq.", "Mr. John Q. Public; Esq."),
    (r"FN:Mr. John Q. Public\\ Esq.", "Mr. John Q. Public\\ Esq."),
    (r"FN:Mr. John Q. Public\ Esq.", "Mr. John Q. Public\\ Esq."),
])
def test_escapes(line, expected):
    card = parse_one(vcard(line))
    assert card.formatted_name[0].value == expected
    assert_round_trip(card)


def test_escaped_newlines_across_a_fold():
    card = parse_one(vcard(
        "FN:Jane Doe",
        "NOTE:Mythical Manager\\NHyjinx Software Division\\n\r\n BabsCo\\, Inc.\\N",
    ))
    assert card.note[0].value == (
        "Mythical Manager\nHyjinx Software Division\nBabsCo, Inc.\n"
    )
    assert_round_trip(card)


@pytest.mark.parametrize("continuation", [" ", "\t"])
def test_folded_lines(continuation):
    sep = "\r\n" + continuation
    card = parse_one(vcard(f"FN:Mr. {sep}John Q. {sep}Public\\, {sep}Esq."))
    assert card.formatted_name[0].value == "Mr. John Q. Public, Esq."
    assert_round_trip(card)


# ── General ────────────────────────────────────────────────────────────────────

def test_source_and_kind():
    card = parse_one(vcard(
        "FN:Jane", "SOURCE:ldap://ldap.example.com/cn=Babs%20Jensen", "KIND:Individual",
    ))
    assert card.source == [UriProperty("ldap://ldap.example.com/cn=Babs%20Jensen")]
    assert card.kind.value is Kind.INDIVIDUAL
    assert_round_trip(card)


def test_kind_unknown():
    with pytest.raises(UnknownKind):
        parse(vcard("FN:Jane", "KIND:robot"))


def test_kind_only_once():
    with pytest.raises(OnlyOnce):
        parse(vcard("FN:Jane", "KIND:group", "KIND:org"))


def test_xml():
    card = parse_one(vcard("FN:Jane", "XML:<foo/>"))
    assert card.xml[0].value == "<foo/>"


# ── Identification ─────────────────────────────────────────────────────────────

def test_structured_name():
    card = parse_one(vcard(FN, "N:Public;John;Quinlan;Mr.;Esq."))
    assert card.name.value == ["Public", "John", "Quinlan", "Mr.", "Esq."]
    assert_round_trip(card)


def test_structured_name_keeps_escaped_semicolons_together():
    card = parse_one(vcard(FN, r"N:Pub\;lic;John;;;"))
    assert card.name.value == ["Pub;lic", "John", "", "", ""]
    assert_round_trip(card)


def test_nickname_parameters():
    card = parse_one(vcard(FN, "NICKNAME;LANGUAGE=en;TYPE=work:Boss"))
    nickname = card.nickname[0]
    assert nickname.value == "Boss"
    assert nickname.parameters.language == "en"
    assert nickname.parameters.types == [GenericType.WORK]
    assert_round_trip(card)


def test_photo_uris_including_folded_data_uri():
    card = parse_one(vcard(
        FN,
        "PHOTO:http://www.example.com/pub/photos/jqpublic.gif",
        "PHOTO:data:image/jpeg;base64,MIICajCCAdOgAwIBAgICBEUwDQYJKoZIhv\r\n"
        " AQEEBQAwdzELMAkGA1UEBhMCVVMxLDAqBgNVBAoTI05ldHNjYXBlIENvbW11bm\r\n"
        " ljYXRpb25zIENvcnBvcmF0aW9uMRwwGgYDVQQLExNJbmZvcm1hdGlvbiBTeXN0",
    ))
    assert len(card.photo) == 2
    assert card.photo[1].value.startswith("data:image/jpeg;base64,MIIC")
    assert card.photo[1].value.endswith("TeXN0")
    assert_round_trip(card)


def test_photo_must_be_a_uri():
    with pytest.raises(UriParse):
        parse(vcard(FN, "PHOTO:not a uri"))


@pytest.mark.parametrize("raw, expected", [
    ("19531015", Date(1953, 10, 15)),
    ("--0415", Date(0, 4, 15)),
    ("T102200Z", time(10, 22, tzinfo=timezone.utc)),
    ("19961022T140000", DateTime(Date(1996, 10, 22), time(14, tzinfo=timezone.utc))),
])
def test_bday_date_and_or_time(raw, expected):
    card = parse_one(vcard(FN, f"BDAY:{raw}"))
    assert isinstance(card.bday, DateAndOrTimeProperty)
    assert card.bday.value == expected
    assert_round_trip(card)


def test_bday_text():
    card = parse_one(vcard(FN, "BDAY;VALUE=text:circa 1800"))
    assert card.bday == TextProperty("circa 1800", parameters=card.bday.parameters)
    assert card.bday.parameters.value is ValueType.TEXT
    assert_round_trip(card)


def test_anniversary_and_only_once():
    card = parse_one(vcard(FN, "ANNIVERSARY:19960415"))
    assert card.anniversary.value == Date(1996, 4, 15)
    with pytest.raises(OnlyOnce):
        parse(vcard(FN, "BDAY:19531015", "BDAY:19531016"))


def test_bday_unsupported_value_type():
    with pytest.raises(UnknownValueType):
        parse(vcard(FN, "BDAY;VALUE=uri:http://example.com"))


@pytest.mark.parametrize("raw, sex, identity", [
    ("M", Sex.MALE, None),
    ("F", Sex.FEMALE, None),
    ("M;Fellow", Sex.MALE, "Fellow"),
    ("F;grrrl", Sex.FEMALE, "grrrl"),
    ("O;intersex", Sex.OTHER, "intersex"),
    (";it's complicated", Sex.NONE, "it's complicated"),
    ("n", Sex.NOT_APPLICABLE, None),
])
def test_gender(raw, sex, identity):
    card = parse_one(vcard(FN, f"GENDER:{raw}"))
    assert card.gender.value.sex is sex
    assert card.gender.value.identity == identity
    assert_round_trip(card)


def test_gender_errors():
    with pytest.raises(NoSex):
        parse(vcard(FN, "GENDER:"))
    with pytest.raises(UnknownSex):
        parse(vcard(FN, "GENDER:X;robot"))


# ── Delivery ───────────────────────────────────────────────────────────────────

def test_address_with_geo_and_label():
    card = parse_one(vcard(
        "FN:Jane Doe",
        'ADR;GEO="geo:12.3457,78.910";LABEL="Mr. John Q. Public, Esq.\\n\r\n'
        " Mail Drop: TNE QB\\n123 Main Street\\nAny Town, CA  91921-1234\\n\r\n"
        ' U.S.A.":;;123 Main Street;Any Town;CA;91921-1234;U.S.A.',
    ))
    prop = card.address[0]
    assert prop.parameters.geo == "geo:12.3457,78.910"
    assert prop.parameters.label == (
        "Mr. John Q. Public, Esq.\nMail Drop: TNE QB\n123 Main Street\n"
        "Any Town, CA  91921-1234\nU.S.A."
    )
    address = prop.value
    assert address.po_box is None
    assert address.extended is None
    assert address.street == "123 Main Street"
    assert address.locality == "Any Town"
    assert address.region == "CA"
    assert address.postal_code == "91921-1234"
    assert address.country == "U.S.A."
    assert_round_trip(card)


def test_address_too_many_components():
    with pytest.raises(InvalidPropertyValue):
        parse(vcard(FN, "ADR:;;1;2;3;4;5;6"))


def test_geo_parameter_must_be_quoted():
    with pytest.raises(GeoNotQuoted):
        parse(vcard(FN, "ADR;GEO=geo:1,2:;;Main Street;;;;"))


def test_label_only_on_address():
    with pytest.raises(LabelNotAllowed):
        parse(vcard(FN, 'TEL;LABEL="home":555-1234'))


# ── Communications ─────────────────────────────────────────────────────────────

def test_tel_uri_with_parameters():
    card = parse_one(vcard(
        FN, 'TEL;VALUE=uri;PREF=1;TYPE="voice,home":tel:+1-555-555-5555;ext=5555',
    ))
    tel = card.tel[0]
    assert isinstance(tel, UriProperty)
    assert tel.value == "tel:+1-555-555-5555;ext=5555"
    assert tel.parameters.value is ValueType.URI
    assert tel.parameters.pref == 1
    assert tel.parameters.types == [TelephoneType.VOICE, TelephoneType.HOME]
    assert_round_trip(card)


def test_tel_falls_back_to_text():
    card = parse_one(vcard(FN, "TEL:555-1234"))
    assert card.tel == [TextProperty("555-1234")]


def test_tel_text_hint_keeps_uri_looking_value_as_text():
    card = parse_one(vcard(FN, "TEL;VALUE=text:tel:+1-555"))
    assert isinstance(card.tel[0], TextProperty)


def test_tel_and_related_type_values_are_scoped():
    card = parse_one(vcard(
        FN,
        "TEL;TYPE=work:tel:+1-555-555-5555",
        "RELATED;TYPE=work:urn:uuid:f81d4fae-7dec-11d0-a765-00a0c91e6bf6",
        "RELATED;TYPE=friend,X-CUSTOM;VALUE=text:Please contact my assistant",
        "EMAIL;TYPE=work:jqpublic@xyz.example.com",
    ))
    assert card.tel[0].parameters.types == [TelephoneType.WORK]
    assert card.related[0].parameters.types == [RelatedType.WORK]
    assert card.related[1].parameters.types == [RelatedType.FRIEND, "X-CUSTOM"]
    assert isinstance(card.related[1], TextProperty)
    assert card.email[0].parameters.types == [GenericType.WORK]
    assert_round_trip(card)


def test_type_not_allowed():
    with pytest.raises(TypeNotAllowed):
        parse(vcard(FN, "BDAY;TYPE=work:19531015"))


def test_impp_and_lang():
    card = parse_one(vcard(
        FN, "IMPP;PREF=1:xmpp:alice@example.com", "LANG;TYPE=work;PREF=1:en",
        "LANG;TYPE=work;PREF=2:fr",
    ))
    assert card.impp[0].value == "xmpp:alice@example.com"
    assert [lang.value for lang in card.lang] == ["en", "fr"]
    assert card.lang[0].parameters.pref == 1
    assert card.lang[0].parameters.types == [GenericType.WORK]
    assert_round_trip(card)


# ── Geographic ─────────────────────────────────────────────────────────────────

def test_timezone_variants():
    card = parse_one(vcard(
        FN,
        "TZ:Raleigh/North America",
        "TZ;VALUE=utc-offset:-0500",
        "TZ;VALUE=uri:https://example.com/tz-database/America/New_York",
    ))
    text, offset, uri = card.timezone
    assert isinstance(text, TextProperty)
    assert isinstance(offset, UtcOffsetProperty)
    assert offset.value.utcoffset(None) == timedelta(hours=-5)
    assert isinstance(uri, UriProperty)
    assert_round_trip(card)


def test_geo():
    card = parse_one(vcard(FN, "GEO:geo:37.386013,-122.082932"))
    assert card.geo[0].value == "geo:37.386013,-122.082932"
    assert_round_trip(card)


def test_tz_parameter_variants():
    card = parse_one(vcard(
        FN,
        "ADR;TZ=-0500:;;Main;;;;",
        'ADR;TZ="https://example.com/tz/New_York":;;Main;;;;',
        "ADR;TZ=America/New_York:;;Main;;;;",
    ))
    first, second, third = (prop.parameters.timezone for prop in card.address)
    assert first.utcoffset(None) == timedelta(hours=-5)
    assert second.value == "https://example.com/tz/New_York"
    assert third == TzText("America/New_York")
    assert_round_trip(card)


# ── Organizational ─────────────────────────────────────────────────────────────

def test_organizational():
    card = parse_one(vcard(
        FN,
        "TITLE:Research Scientist",
        "ROLE:Project Leader",
        "LOGO:http://www.example.com/pub/logos/abccorp.jpg",
        r"ORG:ABC\, Inc.;North American Division;Marketing",
        "MEMBER:urn:uuid:03a0e51f-d1aa-4385-8a53-e29025acd8af",
    ))
    assert card.title[0].value == "Research Scientist"
    assert card.role[0].value == "Project Leader"
    assert card.org[0].value == ["ABC, Inc.", "North American Division", "Marketing"]
    assert card.member[0].value.startswith("urn:uuid:")
    assert_round_trip(card)


def test_group_is_preserved():
    card = parse_one(vcard(FN, "HOME.TITLE:Boss", "item1.X-ABLabel:Other"))
    assert card.title[0].group == "HOME"
    assert card.extensions[0].group == "item1"
    assert_round_trip(card)


# ── Explanatory ────────────────────────────────────────────────────────────────

def test_explanatory():
    card = parse_one(vcard(
        FN,
        r"CATEGORIES:TRAVEL AGENT,INTERNET\,IETF",
        "NOTE:This fax number is operational 0800 to 1715 EST\\, Mon-Fri.",
        "PRODID:-//ONLINE DIRECTORY//NONSGML Version 1//EN",
        "REV:19951031T222710Z",
        "SOUND:CID:JOHNQPUBLIC.part8.19960229T080000.xyzMail@example.com",
        "UID:urn:uuid:f81d4fae-7dec-11d0-a765-00a0c91e6bf6",
        "CLIENTPIDMAP:1;urn:uuid:3df403f4-5924-4bb7-b077-3c711d9eb34b",
        "URL:http://example.org/restaurant.french/~chezchic.html",
    ))
    assert card.categories[0].value == ["TRAVEL AGENT", "INTERNET,IETF"]
    assert card.note[0].value.endswith("EST, Mon-Fri.")
    assert card.prod_id.value.startswith("-//ONLINE")
    assert card.rev.value == DateTime(Date(1995, 10, 31), time(22, 27, 10, tzinfo=timezone.utc))
    assert isinstance(card.uid, UriProperty)
    assert card.client_pid_map[0].value.source == 1
    assert card.client_pid_map[0].value.uri.startswith("urn:uuid:3df4")
    assert_round_trip(card)


@pytest.mark.parametrize("raw", ["0;urn:uid:", "x;urn:uuid:1", "1"])
def test_client_pid_map_rejects(raw):
    with pytest.raises(PropertyError):
        parse(vcard(FN, f"CLIENTPIDMAP:{raw}"))


def test_client_pid_map_source_must_be_positive():
    with pytest.raises(InvalidClientPidMap):
        parse(vcard(FN, "CLIENTPIDMAP:0;urn:uuid:3df403f4-5924-4bb7-b077-3c711d9eb34b"))


# ── Security / calendar ────────────────────────────────────────────────────────

def test_security_and_calendar():
    card = parse_one(vcard(
        FN,
        "KEY:http://www.example.com/keys/jdoe.cer",
        "KEY;MEDIATYPE=application/pgp-keys:ftp://example.com/keys/jdoe",
        "FBURL;PREF=1:http://www.example.com/busy/janedoe",
        "CALADRURI;PREF=1:mailto:janedoe@example.com",
        "CALURI;MEDIATYPE=text/calendar:ftp://ftp.example.com/calA.ics",
    ))
    assert all(isinstance(k, UriProperty) for k in card.key)
    assert card.key[1].parameters.media_type == "application/pgp-keys"
    assert card.fburl[0].parameters.pref == 1
    assert card.cal_adr_uri[0].value == "mailto:janedoe@example.com"
    assert card.cal_uri[0].parameters.media_type == "text/calendar"
    assert_round_trip(card)


# ── Parameters ─────────────────────────────────────────────────────────────────

def test_misc_parameters():
    card = parse_one(vcard(
        FN,
        'N;ALTID=1;SORT-AS="Public,John";PID=1.1,2:Public;John;;;',
        "NOTE;X-SOURCE=abc,def;CALSCALE=gregorian:hi",
    ))
    params = card.name.parameters
    assert params.alt_id == "1"
    assert params.sort_as == ["Public", "John"]
    assert params.pid == [Pid(1, 1), Pid(2)]
    note = card.note[0].parameters
    assert note.extensions == [("X-SOURCE", ["abc", "def"])]
    assert note.calscale == "gregorian"
    assert_round_trip(card)


@pytest.mark.parametrize("line, error", [
    ("NOTE;PREF=0:x", PrefOutOfRange),
    ("NOTE;PREF=101:x", PrefOutOfRange),
    ("NOTE;PREF=abc:x", InvalidInteger),
    ("NOTE;PID=1.x:x", InvalidPid),
    ("NOTE;VALUE=foo:x", UnknownValueType),
    ("NOTE;CHARSET=UTF-8:x", UnknownParameterName),
])
def test_parameter_errors(line, error):
    with pytest.raises(error):
        parse(vcard(FN, line))


@pytest.mark.parametrize("raw, expected", [
    ('"a;b"', ["a;b"]),
    ('"x:y"', ["x:y"]),
    (r"a\nb", ["a\nb"]),
    ('"home,a;b"', [GenericType.HOME, "a;b"]),
])
def test_type_values_needing_quotes_round_trip(raw, expected):
    card = parse_one(vcard("FN:Jane", f"EMAIL;TYPE={raw}:x@example.com"))
    assert card.email[0].parameters.types == expected
    assert_round_trip(card)


@pytest.mark.parametrize("raw, expected", [
    ('"+0500"', "+0500"),
    ('"Paris;France"', "Paris;France"),
    (r'"a\nb"', "a\nb"),
    ("Paris", "Paris"),
])
def test_text_timezone_parameter_round_trip(raw, expected):
    card = parse_one(vcard(f"FN;TZ={raw}:Jane"))
    assert card.formatted_name[0].parameters.timezone == TzText(expected)
    assert_round_trip(card)


# ── Extensions ─────────────────────────────────────────────────────────────────

def test_extension_text_default():
    card = parse_one(vcard("FN:Jane Doe", "X-FOO:This is some text\\, really."))
    prop = card.extensions[0]
    assert prop.name == "X-FOO"
    assert prop.value_type is ValueType.TEXT
    assert prop.value == "This is some text, really."
    assert_round_trip(card)


@pytest.mark.parametrize("line, value_type, expected", [
    ("X-FOO;VALUE=uri:http://example.com/foo", ValueType.URI, "http://example.com/foo"),
    ("X-FOO;VALUE=integer:1,-2,3", ValueType.INTEGER, [1, -2, 3]),
    ("X-FOO;VALUE=float:1.5,2", ValueType.FLOAT, [1.5, 2.0]),
    ("X-FOO;VALUE=boolean:TRUE", ValueType.BOOLEAN, True),
    ("X-FOO;VALUE=date:20221107,--0412", ValueType.DATE, [Date(2022, 11, 7), Date(0, 4, 12)]),
    ("X-FOO;VALUE=language-tag:en-GB", ValueType.LANGUAGE_TAG, "en-GB"),
])
def test_extension_value_types(line, value_type, expected):
    card = parse_one(vcard("FN:Jane Doe", line))
    prop = card.extensions[0]
    assert prop.value_type is value_type
    assert prop.value == expected
    assert_round_trip(card)


def test_extension_time_list():
    card = parse_one(vcard("FN:Jane Doe", "X-FOO;VALUE=time:2200,1800Z,140000-0800"))
    first, second, third = card.extensions[0].value
    assert first == time(22, 0, tzinfo=timezone.utc)
    assert second == time(18, 0, tzinfo=timezone.utc)
    assert third.utcoffset() == timedelta(hours=-8)
    assert_round_trip(card)


def test_extension_date_time_and_offset():
    card = parse_one(vcard(
        "FN:Jane Doe",
        "X-FOO;VALUE=date-time:20221107T2200",
        "X-BAR;VALUE=utc-offset:+0530",
        "X-BAZ;VALUE=timestamp:19961022T140000-05,19961022T140000Z",
        "X-QUX;VALUE=date-and-or-time:T1022,19850412",
    ))
    date_time, offset, timestamps, mixed = (p.value for p in card.extensions)
    assert date_time == [DateTime(Date(2022, 11, 7), time(22, tzinfo=timezone.utc))]
    assert offset.utcoffset(None) == timedelta(hours=5, minutes=30)
    assert len(timestamps) == 2
    assert isinstance(mixed[0], time) and mixed[1] == Date(1985, 4, 12)
    assert_round_trip(card)


# ── Errors inside the property list ────────────────────────────────────────────

@pytest.mark.parametrize("line", [
    "VERSION:4.0",
    "VERSION:5.0",
    "version:3.0",
    "VERSION;X-A=b:4.0",
    "item1.VERSION:4.0",
])
def test_version_inside_body(line):
    with pytest.raises(VersionMisplaced):
        parse(vcard(FN, line))


def test_unknown_property():
    with pytest.raises(UnknownPropertyName):
        parse(vcard(FN, "FOO:bar"))


# ── Strict vs lenient ──────────────────────────────────────────────────────────

BAD = vcard("FN:Jane Doe", "BDAY:not-a-date", "NOTE:kept", "FOO:bar", "VERSION:4.0")


def test_strict_rejects_malformed_property():
    with pytest.raises(PropertyError):
        parse(BAD)


def test_lenient_drops_only_the_bad_properties(caplog):
    caplog.set_level("DEBUG", logger="vcard_codec.parser")
    card = parse_one(BAD, strict=False)
    assert card.bday is None
    assert card.note[0].value == "kept"
    assert card.formatted_name[0].value == "Jane Doe"
    assert "Dropped property" in caplog.text


def test_lenient_drops_bad_parameters():
    card = parse_loose(vcard("FN:Jane", "NOTE;CHARSET=UTF-8:x", "TEL;PREF=500:555"))[0]
    assert card.note == []
    assert card.tel == []


def test_lenient_still_fails_on_structure():
    with pytest.raises(StructuralError):
        parse_loose("BEGIN:VCARD\r\nVERSION:4.0\r\nFN:Jane\r\n")
    with pytest.raises(NoFormattedName):
        parse_loose(vcard("BDAY:bad"))


# ── Incremental iteration ──────────────────────────────────────────────────────

def test_iter_one():
    it = iter_cards("BEGIN:VCARD\nVERSION:4.0\nFN:Jane Doe\nEND:VCARD")
    assert isinstance(next(it), Card)
    assert next(it, None) is None


def test_iter_many():
    text = vcard("FN:Jane Doe") + vcard("FN:John Doe")
    assert [c.display_name for c in iter_cards(text)] == ["Jane Doe", "John Doe"]


def test_iter_error_is_terminal():
    it = iter_cards(vcard("FN:Jane Doe") + "BEGIN:VCARD\nVERSION:4.0")
    assert next(it).display_name == "Jane Doe"
    with pytest.raises(TokenExpected):
        next(it)
    assert next(it, None) is None


def test_parse_one_resumes_after_a_bad_card():
    first = vcard("FN:Jane Doe")
    bad = vcard("FN:Robbie", "KIND:robot")
    text = first + bad + vcard("FN:John Doe")
    parser = VcardParser(text)

    card, end = parser.parse_one(0)
    assert card.display_name == "Jane Doe"
    assert end == len(first) - len("\r\n")
    assert text[:end].endswith("END:VCARD")

    start = parser.skip_blank(end)
    assert start == len(first)
    with pytest.raises(UnknownKind):
        parser.parse_one(start)

    card, end = parser.parse_one(text.index("BEGIN:VCARD", start + 1))
    assert card.display_name == "John Doe"
    assert parser.skip_blank(end) == len(text)


def test_iter_empty():
    assert list(iter_cards("")) == []
    assert list(iter_cards("\r\n  \r\n")) == []


def test_iter_lenient():
    text = vcard("FN:Jane", "KIND:robot") + vcard("FN:John")
    cards = list(iter_cards(text, strict=False))
    assert [c.kind for c in cards] == [None, None]


# ── Validation ─────────────────────────────────────────────────────────────────

def test_validate():
    with pytest.raises(NoFormattedName):
        Card().validate()
    Card(formatted_name=[TextProperty("Jane")]).validate()
