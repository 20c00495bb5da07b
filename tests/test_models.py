"""Tests for finding models and serialisation."""

import json

import pytest
from pydantic import ValidationError

from jsprobe.models import URL, Secret, Severity


class TestSeverity:
    """Test severity values and ordering."""

    def test_values(self):
        assert [s.value for s in Severity] == ["low", "medium", "high"]

    def test_ordering(self):
        assert Severity.LOW < Severity.MEDIUM < Severity.HIGH
        assert Severity.HIGH >= Severity.MEDIUM
        assert Severity.LOW <= Severity.LOW
        assert max([Severity.MEDIUM, Severity.HIGH, Severity.LOW]) is Severity.HIGH
        assert sorted([Severity.HIGH, Severity.LOW, Severity.MEDIUM]) == [
            Severity.LOW,
            Severity.MEDIUM,
            Severity.HIGH,
        ]

    def test_string_compatible(self):
        assert Severity("medium") is Severity.MEDIUM
        assert Severity.HIGH == "high"

    def test_rank(self):
        assert Severity.LOW.rank == 0
        assert Severity.HIGH.rank == 2


class TestURLModel:
    """Test the URL finding model."""

    def test_to_dict_uses_aliases(self):
        url = URL(
            url="/a?b=1",
            query_params=["b"],
            body_params=["c"],
            method="POST",
            type="fetch",
            source='fetch("/a?b=1")',
        )
        assert url.to_dict() == {
            "url": "/a?b=1",
            "queryParams": ["b"],
            "bodyParams": ["c"],
            "method": "POST",
            "type": "fetch",
            "source": 'fetch("/a?b=1")',
        }

    def test_headers_and_content_type_included_when_set(self):
        url = URL(url="/a", headers={"Content-Type": "text/plain"}, content_type="text/plain")
        data = url.to_dict()
        assert data["headers"] == {"Content-Type": "text/plain"}
        assert data["contentType"] == "text/plain"

    def test_accepts_aliases(self):
        url = URL.model_validate({"url": "/a", "queryParams": ["x"], "contentType": "a/b"})
        assert url.query_params == ["x"]
        assert url.content_type == "a/b"

    def test_frozen(self):
        url = URL(url="/a")
        with pytest.raises(ValidationError):
            url.url = "/b"

    def test_equality(self):
        assert URL(url="/a", type="t") == URL(url="/a", type="t")

    def test_json_serialisable(self):
        assert json.loads(json.dumps(URL(url="/a").to_dict()))["url"] == "/a"


class TestSecretModel:
    """Test the Secret finding model."""

    def test_defaults(self):
        secret = Secret(kind="custom")
        assert secret.severity == Severity.LOW
        assert secret.data == {}
        assert secret.context == {}

    def test_to_dict(self):
        secret = Secret(
            kind="fakeApi",
            data={"key": "apiKey", "value": "AUTH_1"},
            severity=Severity.HIGH,
            context={"apiKey": "AUTH_1"},
        )
        assert secret.to_dict() == {
            "kind": "fakeApi",
            "data": {"key": "apiKey", "value": "AUTH_1"},
            "severity": "high",
            "context": {"apiKey": "AUTH_1"},
        }

    def test_severity_from_string(self):
        assert Secret(kind="k", severity="medium").severity is Severity.MEDIUM

    def test_invalid_severity(self):
        with pytest.raises(ValidationError):
            Secret(kind="k", severity="critical")
