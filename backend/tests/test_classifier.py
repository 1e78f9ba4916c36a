"""Tests for the classification adapter."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from callcenter.models import Unit, Urgency
from callcenter.services.classifier import (
    TriageClient,
    parse_classification,
    parse_reformulation,
)

API_URL = "http://provider.test/v1/chat/completions"


def _completion(content: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"choices": [{"message": {"role": "assistant", "content": content}}]},
        request=httpx.Request("POST", API_URL),
    )


class TestParseClassification:
    """Tests for parse_classification."""

    def test_parses_both_fields(self):
        """Test well-formed answer."""
        urgency, unit = parse_classification("URGENCY: Red\nUNIT: Ambulance")

        assert urgency == Urgency.RED
        assert unit == Unit.AMBULANCE

    def test_case_insensitive(self):
        """Test labels and values in any case."""
        urgency, unit = parse_classification("urgency:   yellow\nunit: FIRE DEPARTMENT")

        assert urgency == Urgency.YELLOW
        assert unit == Unit.FIRE_DEPARTMENT

    def test_surrounding_reasoning_ignored(self):
        """Test answer buried in reasoning text."""
        text = "<think>The caller reports smoke.</think>\nSo:\nURGENCY: Red\nUNIT: Fire Department\n"

        assert parse_classification(text) == (Urgency.RED, Unit.FIRE_DEPARTMENT)

    def test_missing_unit_left_unset(self):
        """Test a missing pattern leaves only that field unset."""
        assert parse_classification("URGENCY: Green") == (Urgency.GREEN, None)

    def test_unknown_values_left_unset(self):
        """Test out-of-vocabulary values are not coerced."""
        assert parse_classification("URGENCY: Purple\nUNIT: Coast Guard") == (None, None)

    def test_empty_and_none(self):
        """Test malformed input never raises."""
        assert parse_classification("") == (None, None)
        assert parse_classification(None) == (None, None)


class TestParseReformulation:
    """Tests for parse_reformulation."""

    def test_last_non_blank_line_wins(self):
        """Test verbose answers keep only the final line."""
        text = "reasoning...\nriga1\nDescrizione tecnica finale"

        assert parse_reformulation(text) == "Descrizione tecnica finale"

    def test_trailing_blank_lines(self):
        """Test blank lines after the rewrite are skipped."""
        assert parse_reformulation("Incendio in appartamento\n\n   \n") == "Incendio in appartamento"

    def test_single_line(self):
        assert parse_reformulation("  Caduta di persona anziana  ") == "Caduta di persona anziana"

    def test_empty(self):
        assert parse_reformulation("") is None
        assert parse_reformulation("\n \n") is None


class TestTriageClient:
    """Tests for TriageClient."""

    def test_init_with_key(self):
        """Test client initialization with API key."""
        client = TriageClient(api_url=API_URL, api_key="secret")
        assert client.headers["Authorization"] == "Bearer secret"

    def test_init_without_key(self):
        """Test client initialization without API key."""
        client = TriageClient(api_url=API_URL, api_key=None)
        assert "Authorization" not in client.headers

    @pytest.mark.asyncio
    async def test_classify_success(self):
        """Test both calls succeed."""
        client = TriageClient(api_url=API_URL, api_key="test")

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [
                _completion("URGENCY: Red\nUNIT: Fire Department"),
                _completion("Pensiero...\nIncendio in appartamento al terzo piano"),
            ]

            result = await client.classify("C'è un incendio nel mio appartamento al terzo piano")

        assert result.classified is True
        assert result.urgency == Urgency.RED
        assert result.unit == Unit.FIRE_DEPARTMENT
        assert result.reformulated_text == "Incendio in appartamento al terzo piano"
        assert mock_post.call_count == 2

        payload = mock_post.call_args_list[0].kwargs["json"]
        assert payload["messages"][0]["role"] == "system"
        assert "Emergency description" in payload["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_transport_failure_is_absorbed(self):
        """Test connection errors never propagate."""
        client = TriageClient(api_url=API_URL, api_key="test")

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = httpx.ConnectError("connection refused")

            result = await client.classify("Persona ferita in strada")

        assert result.classified is False
        assert result.urgency is None
        assert result.unit is None
        assert result.reformulated_text is None

    @pytest.mark.asyncio
    async def test_timeout_is_absorbed(self):
        """Test timeouts are treated as failures."""
        client = TriageClient(api_url=API_URL, api_key="test", timeout=0.01)

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = httpx.ReadTimeout("too slow")

            result = await client.classify("Persona ferita in strada")

        assert result.classified is False

    @pytest.mark.asyncio
    async def test_server_error_is_absorbed(self):
        """Test non-2xx responses are treated as failures."""
        client = TriageClient(api_url=API_URL, api_key="test")

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = httpx.Response(
                503, text="overloaded", request=httpx.Request("POST", API_URL)
            )

            result = await client.classify("Persona ferita in strada")

        assert result.classified is False
        assert result.reformulated_text is None

    @pytest.mark.asyncio
    async def test_malformed_body_is_absorbed(self):
        """Test bodies without choices are treated as failures."""
        client = TriageClient(api_url=API_URL, api_key="test")

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = httpx.Response(
                200, json={"error": "nope"}, request=httpx.Request("POST", API_URL)
            )

            result = await client.classify("Persona ferita in strada")

        assert result.classified is False

    @pytest.mark.asyncio
    async def test_calls_are_independent(self):
        """Test a failed classification still yields a reformulation."""
        client = TriageClient(api_url=API_URL, api_key="test")

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [
                httpx.ConnectError("connection refused"),
                _completion("Soggetto ferito sulla carreggiata"),
            ]

            result = await client.classify("Persona ferita in strada")

        assert result.classified is False
        assert result.reformulated_text == "Soggetto ferito sulla carreggiata"

    @pytest.mark.asyncio
    async def test_unparsable_classification(self):
        """Test an answer in the wrong format counts as unclassified."""
        client = TriageClient(api_url=API_URL, api_key="test")

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [
                _completion("I think this is quite serious."),
                _completion("Soggetto ferito sulla carreggiata"),
            ]

            result = await client.classify("Persona ferita in strada")

        assert result.classified is False
        assert result.urgency is None
