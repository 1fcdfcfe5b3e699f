from __future__ import annotations

import pytest

from util import functions
from util.enums import ProviderId


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc123", "abc123"),
        ("bearer   abc123  ", "abc123"),
        ("Basic dXNlcg==", None),
        ("Bearer ", None),
        (None, None),
        ("", None),
    ],
)
def test_bearer_token(header, expected):
    assert functions.bearer_token(header) == expected


def test_owner_id_is_stable_and_opaque():
    a = functions.owner_id("token-a")
    assert a == functions.owner_id("token-a")
    assert a != functions.owner_id("token-b")
    assert "token-a" not in a and len(a) == 64
    assert functions.owner_id(None) is None


@pytest.mark.parametrize(
    "filename, content_type, expected",
    [
        ("paper.pdf", None, True),
        ("PAPER.PDF", "application/octet-stream", True),
        ("scan", "application/pdf", True),
        ("notes.txt", "text/plain", False),
        (None, None, False),
    ],
)
def test_is_pdf(filename, content_type, expected):
    assert functions.is_pdf(filename, content_type) is expected


def test_clean_output_strips_common_indent():
    text = "\n\n    # Title\n      - point\n    Closing line\n   \n"
    assert functions.clean_output(text) == "# Title\n  - point\nClosing line"


def test_clean_output_leaves_unindented_text():
    assert functions.clean_output("  \nAlready clean\n  nested\n") == "Already clean\n  nested"


def test_provider_parse():
    assert ProviderId.parse(" Anthropic ") is ProviderId.ANTHROPIC
    assert ProviderId.parse("mistral") is None
    assert ProviderId.parse(None) is None
