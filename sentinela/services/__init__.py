"""Sentinela services.

- risk_engine: hybrid keyword + LLM risk assessment of chat messages
- llm_service: OpenAI-compatible client used for contextual analysis

All services hash subject identifiers with hash_subject_id() before logging.
"""
