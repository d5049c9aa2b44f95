"""Tests for the narrative service boundary: prompts, parsing and failure mapping."""

import asyncio
import json

import httpx
import pytest
from openai import APIStatusError, APITimeoutError

from trainlytics.analyzers.ai import AINarrativeService, parse_analysis
from trainlytics.analyzers.payloads import (
    build_initial_payload,
    build_initial_prompt,
    build_refresher_feedback_prompt,
    build_refresher_payload,
    build_refresher_prompt,
    strip_code_fences,
)
from trainlytics.constants import (
    REFRESHER_PAYLOAD_MAX_CHARS,
    CohortStatus,
    PayloadKey,
    ServiceFailure,
    UserMessage,
)
from trainlytics.errors import NarrativeServiceError, describe_service_failure

from .conftest import make_operator, make_student

ANALYSIS_JSON = json.dumps(
    {
        "summary": "Turma dentro da meta.",
        "keyInsights": ["Faltas derrubam a nota."],
        "recommendations": ["Reforço em Excel."],
        "performanceScore": 72,
        "individualInsights": [{"studentName": "Ana", "insight": "Nota 6.0"}],
    }
)

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


@pytest.fixture
def service():
    return AINarrativeService(api_key="test-key", model="test-model")


def test_strip_code_fences():
    assert strip_code_fences("```json\n{\"a\": 1}\n```") == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


def test_parse_analysis_accepts_fenced_json():
    analysis = parse_analysis(f"```json\n{ANALYSIS_JSON}\n```")

    assert analysis.summary == "Turma dentro da meta."
    assert analysis.performance_score == 72
    assert analysis.key_insights == ["Faltas derrubam a nota."]
    assert analysis.individual_insights[0].student_name == "Ana"
    assert analysis.is_in_progress is False


@pytest.mark.parametrize("body", [None, "", "   "])
def test_parse_analysis_empty_body(body):
    with pytest.raises(NarrativeServiceError) as exc_info:
        parse_analysis(body)
    assert str(exc_info.value) == ServiceFailure.EMPTY_RESPONSE


def test_parse_analysis_rejects_wrong_shape():
    with pytest.raises(NarrativeServiceError) as exc_info:
        parse_analysis('{"keyInsights": []}')
    assert str(exc_info.value) == ServiceFailure.GENERIC


@pytest.mark.parametrize(
    "raw,message,retryable",
    [
        ("blocked: SAFETY", ServiceFailure.CONTENT_FILTERED, False),
        ("429 Too Many Requests", ServiceFailure.RATE_LIMITED, True),
        ("403 Forbidden", ServiceFailure.PERMISSION_DENIED, False),
        ("500 boom", ServiceFailure.GENERIC, False),
    ],
)
def test_describe_service_failure(raw, message, retryable):
    assert describe_service_failure(raw) == (message, retryable)


def test_initial_payload_truncates_observations():
    records = [
        make_student("Ana", observations="x" * 250),
        make_student("Bia", observations=""),
    ]
    payload = build_initial_payload(records)

    assert len(payload[0][PayloadKey.OBSERVATIONS]) == 100
    assert payload[1][PayloadKey.OBSERVATIONS] == "N/A"
    assert payload[0][PayloadKey.GRADE] == 8.0


def test_refresher_payload_groups_by_operator_id():
    records = [
        make_operator("Rui", id="1", indicator="TMA"),
        make_operator("Ana", id="2", indicator="NPS"),
        make_operator("Rui", id="1", indicator="NPS"),
    ]
    payload = build_refresher_payload(records)

    assert [entry[PayloadKey.OPERATOR_NAME] for entry in payload] == ["Rui", "Ana"]
    assert [metric[PayloadKey.INDICATOR] for metric in payload[0][PayloadKey.METRICS]] == [
        "TMA",
        "NPS",
    ]


def test_refresher_prompt_caps_the_data_block():
    records = [
        make_operator(f"Operador {index}", id=str(index), indicator="TMA")
        for index in range(600)
    ]
    full_payload = json.dumps(build_refresher_payload(records), ensure_ascii=False)
    prompt = build_refresher_prompt(records)

    assert len(full_payload) > REFRESHER_PAYLOAD_MAX_CHARS
    assert full_payload[:REFRESHER_PAYLOAD_MAX_CHARS] in prompt
    assert full_payload not in prompt


def test_initial_prompt_states_cohort_progress():
    records = [make_student()]
    assert "EM ANDAMENTO" in build_initial_prompt(records, in_progress=True)
    assert "CONCLUÍDA" in build_initial_prompt(records, in_progress=False)


def test_refresher_feedback_prompt_without_post_result():
    prompt = build_refresher_feedback_prompt(make_operator(post_result=0))
    assert "AINDA NÃO MENSURADO" in prompt

    prompt = build_refresher_feedback_prompt(make_operator(post_result=82))
    assert "Resultado PÓS-Reciclagem: 82" in prompt


def test_model_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("TRAINLYTICS_MODEL", "env-model")
    assert AINarrativeService(api_key="k").model == "env-model"
    assert AINarrativeService(api_key="k", model="explicit").model == "explicit"


def test_analyze_initial_sets_progress_from_records(service, monkeypatch):
    prompts = []

    async def fake_complete(**kwargs):
        prompts.append(kwargs)
        return ANALYSIS_JSON

    monkeypatch.setattr(service, "_complete", fake_complete)
    records = [make_student(days_filled=21)]

    inferred = asyncio.run(service.analyze_initial(records))
    forced = asyncio.run(service.analyze_initial(records, CohortStatus.IN_PROGRESS))

    assert inferred.is_in_progress is False
    assert forced.is_in_progress is True
    assert prompts[0]["json_mode"] is True
    assert "CONCLUÍDA" in prompts[0]["prompt"]


def test_analyze_refresher_zeroes_knowledge_gain(service, monkeypatch):
    async def fake_complete(**kwargs):
        return json.dumps({**json.loads(ANALYSIS_JSON), "knowledgeGain": 40})

    monkeypatch.setattr(service, "_complete", fake_complete)

    analysis = asyncio.run(service.analyze_refresher([make_operator()]))

    assert analysis.knowledge_gain == 0
    assert analysis.is_in_progress is False


def test_analyze_propagates_empty_response(service, monkeypatch):
    async def fake_complete(**kwargs):
        return ""

    monkeypatch.setattr(service, "_complete", fake_complete)

    with pytest.raises(NarrativeServiceError):
        asyncio.run(service.analyze_initial([make_student()]))


def test_rate_limit_status_is_mapped(service, monkeypatch):
    async def fake_create(**kwargs):
        raise APIStatusError(
            "Too Many Requests",
            response=httpx.Response(429, request=REQUEST),
            body=None,
        )

    monkeypatch.setattr(service, "_create", fake_create)

    with pytest.raises(NarrativeServiceError) as exc_info:
        asyncio.run(service._complete(prompt="oi"))
    assert str(exc_info.value) == ServiceFailure.RATE_LIMITED
    assert exc_info.value.retryable is True


def test_timeout_is_mapped(service, monkeypatch):
    async def fake_create(**kwargs):
        raise APITimeoutError(request=REQUEST)

    monkeypatch.setattr(service, "_create", fake_create)

    with pytest.raises(NarrativeServiceError) as exc_info:
        asyncio.run(service._complete(prompt="oi"))
    assert str(exc_info.value) == ServiceFailure.TIMEOUT
    assert exc_info.value.retryable is True


def test_feedback_falls_back_on_failure(service, monkeypatch):
    async def failing_complete(**kwargs):
        raise NarrativeServiceError(ServiceFailure.RATE_LIMITED, retryable=True)

    monkeypatch.setattr(service, "_complete", failing_complete)

    text = asyncio.run(service.generate_feedback(make_student()))
    assert text == ServiceFailure.GENERIC


def test_feedback_with_empty_body(service, monkeypatch):
    async def empty_complete(**kwargs):
        return None

    monkeypatch.setattr(service, "_complete", empty_complete)

    text = asyncio.run(service.generate_feedback(make_operator()))
    assert text == UserMessage.FEEDBACK_UNAVAILABLE


def test_feedback_batch_keeps_input_order(service, monkeypatch):
    delays = {"Ana": 0.03, "Bia": 0.0, "Caio": 0.01}

    async def fake_complete(*, prompt, model=None, **kwargs):
        name = next(name for name in delays if f"Nome: {name}" in prompt)
        await asyncio.sleep(delays[name])
        return f"feedback {name}"

    monkeypatch.setattr(service, "_complete", fake_complete)
    records = [make_student(name) for name in delays]

    results = asyncio.run(service.generate_feedback_batch(records))

    assert [record.name for record, _ in results] == ["Ana", "Bia", "Caio"]
    assert [text for _, text in results] == ["feedback Ana", "feedback Bia", "feedback Caio"]
