"""Integration tests for the generation ledger: recording, status, retry lineage."""
import pytest

from contentflow.errors import NotFoundError
from contentflow.models import ContentType, GenerationStatus
from contentflow.schemas import GenerationRequest


@pytest.fixture
async def attempt(ledger):
    return await ledger.record_attempt(ContentType.article, "a1", GenerationRequest(), prompt="Write the article")


async def test_record_uses_defaults(attempt):
    assert attempt.status == GenerationStatus.pending
    assert attempt.temperature == 0.7
    assert attempt.max_tokens == 1000
    assert attempt.prompt == "Write the article"
    snapshot = attempt.metadata["requestMetadata"]
    assert snapshot["customPrompt"] is False
    assert "timestamp" in snapshot


async def test_custom_prompt_is_not_stored_twice(ledger):
    request = GenerationRequest(custom_prompt="secret sauce prompt", temperature=1.1, max_tokens=64)
    attempt = await ledger.record_attempt(ContentType.outline, "o1", request)
    assert attempt.prompt == "secret sauce prompt"
    assert "secret sauce prompt" not in str(attempt.metadata)
    assert attempt.metadata["requestMetadata"]["customPrompt"] is True
    assert (attempt.temperature, attempt.max_tokens) == (1.1, 64)


async def test_failed_then_retry_history(ledger, attempt):
    failed = await ledger.update_status(attempt.id, GenerationStatus.failed, error="timeout")
    assert failed.error == "timeout"

    retry = await ledger.retry(attempt.id)

    history = await ledger.history("a1")
    assert [row.id for row in history] == [retry.id, attempt.id]
    assert history[0].metadata["retryOf"] == attempt.id


async def test_retry_copies_fields_and_leaves_original(ledger, attempt):
    await ledger.update_status(attempt.id, GenerationStatus.failed, error="timeout")
    retry = await ledger.retry(attempt.id)

    assert retry.id != attempt.id
    assert retry.status == GenerationStatus.pending
    assert (retry.content_id, retry.content_type, retry.prompt) == ("a1", ContentType.article, "Write the article")
    assert (retry.temperature, retry.max_tokens, retry.llm_id) == (0.7, 1000, attempt.llm_id)

    info = retry.metadata["retryInfo"]
    assert info["reason"] == "Manual retry"
    assert info["previousStatus"] == "failed"
    assert info["previousError"] == "timeout"
    assert retry.metadata["originalMetadata"] == attempt.metadata

    original = await ledger.get(attempt.id)
    assert original.status == GenerationStatus.failed
    assert original.error == "timeout"


async def test_retries_of_one_original_form_a_star(ledger, attempt):
    first = await ledger.retry(attempt.id)
    second = await ledger.retry(attempt.id)
    assert first.metadata["retryOf"] == second.metadata["retryOf"] == attempt.id


async def test_retry_chain_walks_back(ledger, attempt):
    first = await ledger.retry(attempt.id)
    second = await ledger.retry(first.id)
    chain = await ledger.retry_chain(second.id)
    assert [row.id for row in chain] == [second.id, first.id, attempt.id]


async def test_retry_unknown_id(ledger):
    with pytest.raises(NotFoundError):
        await ledger.retry("missing")


async def test_error_only_kept_on_failure(ledger, attempt):
    done = await ledger.update_status(attempt.id, GenerationStatus.completed, error="ignored")
    assert done.status == GenerationStatus.completed
    assert done.error is None


async def test_status_can_be_reset_repeatedly(ledger, attempt):
    await ledger.update_status(attempt.id, GenerationStatus.completed)
    again = await ledger.update_status(attempt.id, GenerationStatus.pending)
    assert again.status == GenerationStatus.pending


async def test_metadata_is_replaced_not_merged(ledger, attempt):
    updated = await ledger.update_metadata(attempt.id, {"note": "reviewed"})
    assert updated.metadata == {"note": "reviewed"}


async def test_history_joins_llm_registry(store, ledger):
    await store.upsert_llm("llama3.1:8b", name="Llama 3.1 8B", model_id="llama3.1:8b", provider="ollama")
    await ledger.record_attempt(ContentType.pillar, "n1", GenerationRequest())
    await ledger.record_attempt(ContentType.pillar, "n1", GenerationRequest(llm_id="unknown-model"))

    newest, oldest = await ledger.history("n1")
    assert newest.llm_id == "unknown-model"
    assert newest.llm_name is None
    assert (oldest.llm_name, oldest.provider) == ("Llama 3.1 8B", "ollama")


async def test_update_missing_generation(ledger):
    with pytest.raises(NotFoundError):
        await ledger.update_status("missing", GenerationStatus.failed)
    with pytest.raises(NotFoundError):
        await ledger.update_metadata("missing", {})
