from core.llm.providers import claude, dummy_provider  # noqa: F401
