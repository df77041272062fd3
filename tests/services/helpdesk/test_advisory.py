"""Tests for triage advice: heuristics, the Gemini client and fallback."""

import asyncio
import json
from typing import Any

import httpx
import pytest

from services.helpdesk.domain import DEFAULT_DEPARTMENTS, Department
from services.helpdesk.ml.advisory import (
    SOURCE_GEMINI,
    SOURCE_HEURISTIC,
    heuristic_analysis,
    parse_model_answer,
)
from services.helpdesk.ml.advisory.heuristic import (
    CLARIFYING_QUESTIONS,
    EXACT_ERROR_QUESTION,
    EXACT_ERROR_STEP,
    GENERIC_STEPS,
    OTHER_USERS_QUESTION,
    candidate_steps,
)
from services.helpdesk.repositories import Repositories
from services.helpdesk.services import AdvisoryService
from shared.llm import (
    GeminiProvider,
    LLMError,
    LLMMessage,
    LLMProvider,
    LLMResponse,
    extract_json_object,
)


@pytest.fixture
def departments() -> list[Department]:
    return [
        Department(id=index, name=name, description=description, color=color)
        for index, (name, description, color) in enumerate(DEFAULT_DEPARTMENTS, start=1)
    ]


class FakeProvider(LLMProvider):
    """Answers with a fixed text, raises, or blocks until cancelled."""

    def __init__(self, answer: str = "", error: Exception | None = None, block: bool = False) -> None:
        self.answer = answer
        self.error = error
        self.block = block
        self.calls = 0

    @property
    def name(self) -> str:
        return "fake"

    @property
    def model(self) -> str:
        return "fake-1"

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        self.calls += 1
        if self.block:
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.answer, model=self.model, provider=self.name)

    async def health_check(self) -> dict[str, Any]:
        return {"status": "healthy"}


class TestHeuristic:
    def test_network_ticket(self, departments: list[Department]) -> None:
        result = heuristic_analysis("Sem internet", "A VPN não conecta desde cedo", departments)

        assert result.source == SOURCE_HEURISTIC
        assert result.suggestions[:3] == GENERIC_STEPS
        assert result.suggestions[3] == EXACT_ERROR_STEP
        assert len(result.suggestions) == 5
        assert result.next_action == result.suggestions[0]
        assert result.follow_up_questions == [EXACT_ERROR_QUESTION, OTHER_USERS_QUESTION]
        assert result.predicted_department_name == "T.I"
        assert result.confidence == pytest.approx(0.8)

    def test_error_code_skips_exact_error_prompts(self, departments: list[Department]) -> None:
        result = heuristic_analysis("Erro 500 no sistema", "", departments)

        assert EXACT_ERROR_STEP not in result.suggestions
        assert result.follow_up_questions == [OTHER_USERS_QUESTION]

    def test_filters_done_actions_case_insensitively(self, departments: list[Department]) -> None:
        done = [GENERIC_STEPS[0].upper()]

        result = heuristic_analysis("Sem internet", "", departments, done_actions=done)

        assert GENERIC_STEPS[0] not in result.suggestions
        assert result.next_action == GENERIC_STEPS[1]

    def test_exhausted_candidates_fall_back_to_clarifying_questions(self, departments: list[Department]) -> None:
        text = "Sem internet na rede"
        prior = candidate_steps(text.lower())

        result = heuristic_analysis(text, "", departments, prior_suggestions=prior)

        assert result.suggestions == CLARIFYING_QUESTIONS
        assert OTHER_USERS_QUESTION in result.follow_up_questions

    def test_clarifying_questions_skip_those_already_shown(self, departments: list[Department]) -> None:
        text = "Sem internet na rede"
        prior = candidate_steps(text.lower()) + [CLARIFYING_QUESTIONS[0]]

        result = heuristic_analysis(text, "", departments, prior_suggestions=prior)

        assert result.suggestions == [CLARIFYING_QUESTIONS[1]]

    @pytest.mark.parametrize(
        "text,hint",
        [
            ("Servidor parado", "critica"),
            ("Sistema urgente", "critica"),
            ("Rede intermitente", "alta"),
            ("Dúvida sobre relatório", None),
        ],
    )
    def test_priority_hint(self, departments: list[Department], text: str, hint: str | None) -> None:
        assert heuristic_analysis(text, "", departments).priority_hint == hint

    def test_finance_prediction(self, departments: list[Department]) -> None:
        result = heuristic_analysis("Boleto vencido", "Pagamento não compensou", departments)

        assert result.predicted_department_name == "Financeiro"

    @pytest.mark.parametrize(
        "text,expected",
        [
            # "ti" inside other words does not count for T.I
            ("A partida do processo nao inicia", None),
            ("Tive um problema no estoque", "Produção"),
            ("Preciso de ajuda da TI", "T.I"),
        ],
    )
    def test_ti_is_matched_as_a_whole_word(
        self, departments: list[Department], text: str, expected: str | None
    ) -> None:
        assert heuristic_analysis(text, "", departments).predicted_department_name == expected

    def test_no_department_without_signals(self, departments: list[Department]) -> None:
        result = heuristic_analysis("Dúvida geral", "Quero uma informação", departments)

        assert result.predicted_department_id is None
        assert result.confidence is None


class TestModelAnswer:
    def test_extract_fenced_json(self) -> None:
        text = 'Claro!\n```json\n{"suggestions": ["a"]}\n```'
        assert json.loads(extract_json_object(text)) == {"suggestions": ["a"]}

    def test_extract_first_balanced_block(self) -> None:
        text = 'Resposta: {"a": {"b": 1}} e mais {"c": 2}'
        assert extract_json_object(text) == '{"a": {"b": 1}}'

    def test_extract_none(self) -> None:
        assert extract_json_object("sem json aqui") is None

    def test_parse_is_lenient(self, departments: list[Department]) -> None:
        result = parse_model_answer(
            {
                "suggestions": ["Reinicie o roteador", 3, "", "Reinicie o roteador"],
                "predictedDepartmentName": "t.i",
                "confidence": 1.7,
                "priorityHint": "alta",
            },
            departments,
        )

        assert result.source == SOURCE_GEMINI
        assert result.suggestions == ["Reinicie o roteador"]
        assert result.predicted_department_id == 4
        assert result.confidence == 1.0
        assert result.rationale is None

    def test_unknown_department_is_dropped(self, departments: list[Department]) -> None:
        result = parse_model_answer({"predictedDepartmentName": "Jurídico"}, departments)

        assert result.predicted_department_id is None
        assert not result.is_useful


class TestAdvisoryService:
    @pytest.mark.asyncio
    async def test_without_provider_uses_heuristic(self, repos: Repositories) -> None:
        result = await AdvisoryService(repos.departments).analyze("Sem internet", "VPN caiu")

        assert result.source == SOURCE_HEURISTIC
        assert result.predicted_department_name == "T.I"

    @pytest.mark.asyncio
    async def test_provider_answer_is_used(self, repos: Repositories) -> None:
        answer = '```json\n{"suggestions": ["Verifique o cabo"], "predictedDepartmentName": "T.I", "confidence": 0.7}\n```'
        provider = FakeProvider(answer=answer)

        result = await AdvisoryService(repos.departments, provider=provider).analyze("Sem rede", "")

        assert result.source == SOURCE_GEMINI
        assert result.suggestions == ["Verifique o cabo"]
        assert result.predicted_department_id == 4
        assert provider.calls == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "provider",
        [
            FakeProvider(error=LLMError("all candidates failed")),
            FakeProvider(error=httpx.ConnectError("refused")),
            FakeProvider(answer="não sei"),
            FakeProvider(answer='{"suggestions": []}'),
        ],
    )
    async def test_failures_fall_back(self, repos: Repositories, provider: FakeProvider) -> None:
        result = await AdvisoryService(repos.departments, provider=provider).analyze("Sem internet", "")

        assert result.source == SOURCE_HEURISTIC
        assert result.suggestions

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, repos: Repositories) -> None:
        service = AdvisoryService(repos.departments, provider=FakeProvider(block=True), timeout_seconds=0.05)

        result = await service.analyze("Sem internet", "")

        assert result.source == SOURCE_HEURISTIC

    @pytest.mark.asyncio
    async def test_cancellation_aborts_without_fallback(self, repos: Repositories) -> None:
        provider = FakeProvider(block=True)
        service = AdvisoryService(repos.departments, provider=provider, timeout_seconds=30)

        task = asyncio.create_task(service.analyze("Sem internet", ""))
        while provider.calls == 0:
            await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task


def gemini_reply(text: str) -> dict[str, Any]:
    return {
        "candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}],
        "usageMetadata": {"promptTokenCount": 10, "candidatesTokenCount": 5, "totalTokenCount": 15},
    }


def gemini_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url="https://gemini.test", transport=httpx.MockTransport(handler))


class TestGeminiProvider:
    def test_candidates_order(self) -> None:
        provider = GeminiProvider(api_key="k", model="gemini-1.5-flash", client=gemini_client(lambda r: None))

        candidates = provider.candidates

        assert candidates[0] == ("v1beta", "gemini-1.5-flash")
        assert candidates[1] == ("v1", "gemini-1.5-flash")
        assert candidates[2] == ("v1beta", "gemini-1.5-flash-latest")
        assert len(candidates) == len(set(candidates))

    @pytest.mark.asyncio
    async def test_falls_through_to_next_candidate(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if len(seen) == 1:
                return httpx.Response(404, json={"error": {"message": "model not found"}})
            return httpx.Response(200, json=gemini_reply('{"suggestions": ["Teste"]}'))

        provider = GeminiProvider(api_key="secret", client=gemini_client(handler))

        data = await provider.generate_json("prompt", system_prompt="Você é um assistente")

        assert data == {"suggestions": ["Teste"]}
        assert len(seen) == 2
        assert seen[0].url.path == "/v1beta/models/gemini-1.5-flash:generateContent"
        assert seen[1].url.path == "/v1/models/gemini-1.5-flash:generateContent"
        assert seen[1].url.params["key"] == "secret"

        body = json.loads(seen[1].content)
        assert body["contents"][0]["role"] == "user"
        assert body["contents"][0]["parts"][0]["text"].startswith("Você é um assistente")

    @pytest.mark.asyncio
    async def test_joins_text_parts(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            reply = {"candidates": [{"content": {"parts": [{"text": "linha 1"}, {"text": " "}, {"text": "linha 2"}]}}]}
            return httpx.Response(200, json=reply)

        provider = GeminiProvider(api_key="k", client=gemini_client(handler))

        response = await provider.complete([LLMMessage(role="user", content="oi")])

        assert response.content == "linha 1\nlinha 2"
        assert response.provider == "gemini"

    @pytest.mark.asyncio
    async def test_all_candidates_failing_raises(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(503)

        provider = GeminiProvider(api_key="k", client=gemini_client(handler))

        with pytest.raises(LLMError):
            await provider.generate_text("prompt")
        assert calls == len(provider.candidates)

    @pytest.mark.asyncio
    async def test_service_falls_back_when_gemini_fails(self, repos: Repositories) -> None:
        provider = GeminiProvider(api_key="k", client=gemini_client(lambda r: httpx.Response(500)))

        result = await AdvisoryService(repos.departments, provider=provider).analyze("Sem internet", "")

        assert result.source == SOURCE_HEURISTIC
