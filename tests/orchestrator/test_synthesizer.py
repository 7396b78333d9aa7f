"""Tests for kakebo.orchestrator.synthesizer"""

import pytest

from conftest import FakeLLMClient, text_response
from kakebo.errors import DEFAULT_ERROR_MESSAGE, ModelProviderError
from kakebo.models import Message, ToolResult
from kakebo.orchestrator.metrics import MetricsAccountant
from kakebo.orchestrator.synthesizer import (
    ALL_TOOLS_FAILED_MESSAGE,
    EMPTY_RESPONSE_MESSAGE,
    SYNTHESIS_SYSTEM_PROMPT,
    Synthesizer,
)

RESULTS = {
    "getBudgetStatus": ToolResult.ok({"totalSpent": 200.0}),
    "detectAnomalies": ToolResult.failed("No pude acceder a los datos para detección de anomalías."),
}


@pytest.fixture
def accountant():
    return MetricsAccountant("fake-model")


async def collect(synthesizer, *args):
    return [piece async for piece in synthesizer.stream(*args)]


class TestSynthesize:

    @pytest.mark.asyncio
    async def test_folds_every_envelope_into_prompt(self, accountant):
        llm = FakeLLMClient(["Llevas 200€ gastados."])
        text = await Synthesizer(llm).synthesize("¿Cómo voy?", [], RESULTS, accountant)

        assert text == "Llevas 200€ gastados."
        prompt = llm.calls[0]["messages"][-1]["content"]
        assert '"totalSpent": 200.0' in prompt
        assert '"success": false' in prompt
        assert "detección de anomalías" in prompt
        assert llm.calls[0]["tools"] is None
        assert llm.calls[0]["config"]["temperature"] == 0.6

    @pytest.mark.asyncio
    async def test_all_failed_skips_model(self, accountant):
        llm = FakeLLMClient()
        results = {"getBudgetStatus": ToolResult.failed("x"), "detectAnomalies": ToolResult.failed("y")}
        text = await Synthesizer(llm).synthesize("¿Cómo voy?", [], results, accountant)
        assert text == ALL_TOOLS_FAILED_MESSAGE
        assert llm.call_count == 0
        assert accountant.model_calls == 0

    @pytest.mark.asyncio
    async def test_only_argument_errors_are_named(self, accountant):
        results = {
            "createTransaction": ToolResult.failed("Falta el campo 'amount'", "validation"),
            "createTransaction#2": ToolResult.failed("Falta el campo 'amount'", "validation"),
            "getBudgetStatus": ToolResult.failed("No pude acceder a los datos.", "database"),
        }
        text = await Synthesizer(FakeLLMClient()).synthesize("x", [], results, accountant)
        assert text == f"{ALL_TOOLS_FAILED_MESSAGE} Falta el campo 'amount'."

    @pytest.mark.asyncio
    async def test_general_answer_without_results(self, accountant):
        llm = FakeLLMClient(["Kakebo es un método japonés de ahorro."])
        text = await Synthesizer(llm).synthesize("¿Qué es kakebo?", [], {}, accountant)
        assert text.startswith("Kakebo")
        assert llm.calls[0]["config"]["temperature"] == 0.7
        assert "¿Qué es kakebo?" in llm.calls[0]["messages"][-1]["content"]

    @pytest.mark.asyncio
    async def test_history_window(self, accountant):
        llm = FakeLLMClient(["ok"])
        history = [Message(role="user", content=f"m{i}") for i in range(10)]
        await Synthesizer(llm).synthesize("hola", history, {}, accountant)
        contents = [m["content"] for m in llm.calls[0]["messages"][:-1]]
        assert contents == ["m4", "m5", "m6", "m7", "m8", "m9"]

    @pytest.mark.asyncio
    async def test_context_note_follows_system_prompt(self, accountant):
        llm = FakeLLMClient(["ok"])
        history = [Message(role="user", content="hola")]
        await Synthesizer(llm).synthesize("¿Cómo voy?", history, RESULTS, accountant, "IMPORTANTE - USUARIO NUEVO")

        messages = llm.calls[0]["messages"]
        assert messages[0]["content"] == SYNTHESIS_SYSTEM_PROMPT
        assert messages[1] == {"role": "system", "content": "IMPORTANTE - USUARIO NUEVO"}
        assert messages[2]["content"] == "hola"

    @pytest.mark.asyncio
    async def test_context_note_leads_general_answer(self, accountant):
        llm = FakeLLMClient(["ok"])
        await Synthesizer(llm).synthesize("¿Qué es kakebo?", [], {}, accountant, "CONTEXTO: Usuario con 200 días")
        messages = llm.calls[0]["messages"]
        assert messages[0] == {"role": "system", "content": "CONTEXTO: Usuario con 200 días"}
        assert messages[-1]["role"] == "user"

    @pytest.mark.asyncio
    async def test_empty_model_text(self, accountant):
        llm = FakeLLMClient([text_response(""), text_response("")])
        synthesizer = Synthesizer(llm)
        assert await synthesizer.synthesize("x", [], RESULTS, accountant) == DEFAULT_ERROR_MESSAGE
        assert await synthesizer.synthesize("x", [], {}, accountant) == EMPTY_RESPONSE_MESSAGE

    @pytest.mark.asyncio
    async def test_provider_failure(self, accountant):
        llm = FakeLLMClient([ConnectionError("boom")])
        with pytest.raises(ModelProviderError):
            await Synthesizer(llm).synthesize("x", [], RESULTS, accountant)


class TestStream:

    @pytest.mark.asyncio
    async def test_pieces_join_to_synthesized_text(self, accountant):
        reply = "Llevas 200€ gastados este mes."
        streamed = await collect(Synthesizer(FakeLLMClient([reply])), "x", [], RESULTS, accountant)
        text = await Synthesizer(FakeLLMClient([reply])).synthesize("x", [], RESULTS, MetricsAccountant("m"))
        assert len(streamed) > 1
        assert "".join(streamed) == text

    @pytest.mark.asyncio
    async def test_context_note_reaches_the_model(self, accountant):
        llm = FakeLLMClient(["Vas bien."])
        await collect(Synthesizer(llm), "x", [], RESULTS, accountant, "CONTEXTO - HISTÓRICO LIMITADO")
        assert llm.calls[0]["messages"][1]["content"] == "CONTEXTO - HISTÓRICO LIMITADO"

    @pytest.mark.asyncio
    async def test_usage_from_final_chunk(self, accountant):
        llm = FakeLLMClient([text_response("hola mundo", prompt_tokens=11, completion_tokens=4)])
        await collect(Synthesizer(llm), "x", [], RESULTS, accountant)
        assert (accountant.input_tokens, accountant.output_tokens) == (11, 4)
        assert accountant.model_calls == 1

    @pytest.mark.asyncio
    async def test_all_failed(self, accountant):
        results = {"getBudgetStatus": ToolResult.failed("x")}
        assert await collect(Synthesizer(FakeLLMClient()), "x", [], results, accountant) == [ALL_TOOLS_FAILED_MESSAGE]

    @pytest.mark.asyncio
    async def test_all_failed_names_argument_errors(self, accountant):
        results = {"createTransaction": ToolResult.failed("Falta el campo 'amount'", "validation")}
        pieces = await collect(Synthesizer(FakeLLMClient()), "x", [], results, accountant)
        assert pieces == [f"{ALL_TOOLS_FAILED_MESSAGE} Falta el campo 'amount'."]

    @pytest.mark.asyncio
    async def test_empty_stream_falls_back(self, accountant):
        pieces = await collect(Synthesizer(FakeLLMClient([text_response("")])), "x", [], {}, accountant)
        assert pieces == [EMPTY_RESPONSE_MESSAGE]

    @pytest.mark.asyncio
    async def test_provider_failure(self, accountant):
        with pytest.raises(ModelProviderError):
            await collect(Synthesizer(FakeLLMClient([ConnectionError("boom")])), "x", [], RESULTS, accountant)
