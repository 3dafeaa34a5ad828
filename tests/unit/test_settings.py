from contentflow.settings.config import Settings


def test_environment_reads_prefixed_alias(monkeypatch):
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.setenv("CONTENTFLOW_ENVIRONMENT", "production")
    settings = Settings(_env_file=None)
    assert settings.ENVIRONMENT == "production"
    assert settings.is_production


def test_plain_env_names_still_apply(monkeypatch):
    monkeypatch.setenv("OLLAMA_MODEL", "qwen2.5:3b")
    monkeypatch.setenv("llm_max_retries", "5")
    settings = Settings(_env_file=None)
    assert settings.OLLAMA_MODEL == "qwen2.5:3b"
    assert settings.LLM_MAX_RETRIES == 5


def test_keyword_arguments_override_env(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    settings = Settings(_env_file=None, ENVIRONMENT="test", PILLAR_COUNT=7)
    assert settings.ENVIRONMENT == "test"
    assert settings.PILLAR_COUNT == 7
    assert not settings.is_production
