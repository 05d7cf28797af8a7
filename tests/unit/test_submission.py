"""Unit tests for form submission."""

import pytest

from src.core.exceptions import UnexpectedStatus
from src.core.models import FieldKind, FormDescriptor, FormField, GenerationParameters
from src.core.session import ProviderSession, SessionContext
from src.core.submission import (
    DEFAULT_ALIASES,
    FieldAliasTable,
    SubmissionEngine,
    build_fields,
    resolve_destination,
    text_for_field,
)
from tests.stubs import EFFECT_PATH, EFFECT_URL

FORM = FormDescriptor(
    action=EFFECT_URL,
    method="POST",
    fields=[
        FormField(name="text_0", kind=FieldKind.TEXT),
        FormField(name="build_server", value="https://e1.yotools.net", kind=FieldKind.HIDDEN),
        FormField(name="submit", value="GO", kind=FieldKind.SUBMIT),
    ],
)

PARAMETERS = GenerationParameters(
    processing_server_id="https://e1.yotools.net",
    anti_forgery_token="tok123",
    effect_id="183",
    expected_text_slot_count=1,
    extra_hidden_fields={"build_server_id": "2"},
)


def names_with_value(fields, value):
    return {name for name, v in fields if v == value}


class TestFieldAliasTable:
    """Tests for FieldAliasTable."""

    def test_default_names(self):
        assert DEFAULT_ALIASES.names_for(0) == ["text_0", "text-0", "text[]"]
        assert DEFAULT_ALIASES.names_for(2) == ["text_2", "text-2", "text[]"]

    def test_extend_returns_new_table(self):
        extended = DEFAULT_ALIASES.extend("line{index}")

        assert extended.names_for(1)[-1] == "line1"
        assert "line{index}" not in DEFAULT_ALIASES.templates


class TestTextForField:
    """Tests for text selection of empty text fields."""

    def test_numeric_suffix(self):
        assert text_for_field("text_1", 0, ["A", "B"]) == "B"

    def test_bracketed_suffix(self):
        assert text_for_field("text[1]", 0, ["A", "B"]) == "B"

    def test_suffix_out_of_range_uses_position(self):
        assert text_for_field("text_9", 1, ["A", "B"]) == "B"

    def test_falls_back_to_first_text(self):
        assert text_for_field("message", 4, ["A", "B"]) == "A"


class TestBuildFields:
    """Tests for the outbound field set."""

    def test_single_text_sent_under_several_names(self):
        fields = build_fields(FORM, PARAMETERS, ["HELLO"])

        assert len(names_with_value(fields, "HELLO")) >= 3
        assert {"text_0", "text-0", "text[]"} <= names_with_value(fields, "HELLO")

    def test_control_fields_present(self):
        fields = dict(build_fields(FORM, PARAMETERS, ["HELLO"]))

        assert fields["submit"] == "GO"
        assert fields["build"] == "1"
        assert fields["id"] == "183"
        assert fields["effect_id"] == "183"
        assert fields["build_server"] == "https://e1.yotools.net"
        assert fields["build_server_id"] == "2"
        assert fields["_token"] == "tok123"

    def test_form_fields_come_first(self):
        fields = build_fields(FORM, PARAMETERS, ["HELLO"])

        assert fields[:3] == [
            ("text_0", "HELLO"),
            ("build_server", "https://e1.yotools.net"),
            ("submit", "GO"),
        ]

    def test_existing_fields_not_overridden(self):
        form = FormDescriptor(
            action=EFFECT_URL,
            fields=[
                FormField(name="id", value="999", kind=FieldKind.HIDDEN),
                FormField(name="_token", value="form-token", kind=FieldKind.HIDDEN),
            ],
        )

        fields = build_fields(form, PARAMETERS, ["HELLO"])

        assert [v for n, v in fields if n == "id"] == ["999"]
        assert [v for n, v in fields if n == "_token"] == ["form-token"]

    def test_prefilled_text_field_kept(self):
        form = FormDescriptor(
            action=EFFECT_URL,
            fields=[FormField(name="text_0", value="preset", kind=FieldKind.TEXT)],
        )

        fields = build_fields(form, GenerationParameters(effect_id="1"), ["HELLO"])

        assert fields[0] == ("text_0", "preset")

    def test_each_text_under_its_own_index(self):
        form = FormDescriptor(
            action=EFFECT_URL,
            fields=[
                FormField(name="text_1", kind=FieldKind.TEXT),
                FormField(name="text_0", kind=FieldKind.TEXT),
            ],
        )

        fields = build_fields(form, GenerationParameters(), ["TOP", "BOTTOM"])

        assert fields[0] == ("text_1", "BOTTOM")
        assert fields[1] == ("text_0", "TOP")
        assert ("text-1", "BOTTOM") in fields
        assert [v for n, v in fields if n == "text[]"] == ["TOP", "BOTTOM"]

    def test_custom_alias_table(self):
        aliases = FieldAliasTable(("line_{index}",))

        fields = build_fields(FORM, PARAMETERS, ["HELLO"], aliases)

        assert ("line_0", "HELLO") in fields
        assert ("text-0", "HELLO") not in fields

    def test_missing_parameters_leave_optional_controls_out(self):
        form = FormDescriptor(action=EFFECT_URL)

        names = [name for name, _ in build_fields(form, GenerationParameters(), ["A"])]

        assert "id" not in names
        assert "build_server" not in names
        assert "_token" not in names
        assert "submit" in names


class TestResolveDestination:
    """Tests for the submission URL."""

    def test_absolute_action(self):
        assert resolve_destination("https://e1.yotools.net/build", "https://photooxy.com", EFFECT_URL) \
            == "https://e1.yotools.net/build"

    def test_relative_action(self):
        assert resolve_destination("/build", "https://photooxy.com", EFFECT_URL) \
            == "https://photooxy.com/build"
        assert resolve_destination("build.php", "https://photooxy.com", EFFECT_URL) \
            == "https://photooxy.com/build.php"

    def test_missing_action(self):
        assert resolve_destination(None, "https://photooxy.com", EFFECT_URL) == EFFECT_URL
        assert resolve_destination("", "https://photooxy.com", EFFECT_URL) == EFFECT_URL


class TestSubmissionEngine:
    """Tests for SubmissionEngine.submit."""

    def session_for(self, provider, cookies=("PHPSESSID=abc",)):
        context = SessionContext(origin="https://photooxy.com", cookies=list(cookies))
        return ProviderSession(context, transport=provider.transport)

    async def test_posts_multipart_with_session(self, provider):
        provider.html("POST", EFFECT_PATH, "<html>done</html>", **{"set-cookie": "result=1"})

        async with self.session_for(provider) as session:
            result = await SubmissionEngine(session).submit(FORM, PARAMETERS, ["HELLO"], EFFECT_URL)
            cookies = list(session.context.cookies)

        request = provider.sent("POST", EFFECT_PATH)[0]
        body = request.content
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        assert request.headers["Cookie"] == "PHPSESSID=abc"
        assert request.headers["Origin"] == "https://photooxy.com"
        assert request.headers["Referer"] == EFFECT_URL
        assert b'name="text-0"' in body
        assert b'name="build"' in body
        assert b"HELLO" in body

        assert result.html == "<html>done</html>"
        assert result.final_url == EFFECT_URL
        assert result.status_code == 200
        assert ("text[]", "HELLO") in result.fields
        assert cookies == ["PHPSESSID=abc", "result=1"]

    async def test_client_error_page_returned(self, provider):
        provider.html("POST", EFFECT_PATH, "<p>bad request</p>", status=400)

        async with self.session_for(provider) as session:
            result = await SubmissionEngine(session).submit(FORM, PARAMETERS, ["HELLO"], EFFECT_URL)

        assert result.status_code == 400
        assert "bad request" in result.html

    async def test_server_error_raises(self, provider):
        provider.html("POST", EFFECT_PATH, "oops", status=502)

        async with self.session_for(provider) as session:
            with pytest.raises(UnexpectedStatus) as exc_info:
                await SubmissionEngine(session).submit(FORM, PARAMETERS, ["HELLO"], EFFECT_URL)

        assert exc_info.value.status_code == 502

    async def test_non_ascii_text_encoded(self, provider):
        provider.html("POST", EFFECT_PATH, "ok")

        async with self.session_for(provider) as session:
            await SubmissionEngine(session).submit(FORM, PARAMETERS, ["Grüße"], EFFECT_URL)

        assert "Grüße".encode("utf-8") in provider.sent("POST", EFFECT_PATH)[0].content
