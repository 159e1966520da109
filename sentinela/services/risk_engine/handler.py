"""Risk Engine HTTP handler.

The conversation layer posts every user message to /analyze before it
generates a reply. The response carries the canonical assessment, the
profile snapshot to store, the appointment decision and the reply
directives.

An analysis error never fails the turn: the handler answers 200 with the
fallback analyzer's result instead.
"""
import asyncio
import json
import logging
import os
import threading

from flask import Flask, request, jsonify

from sentinela.services.llm_service import LLMConfig, create_llm
from sentinela.shared.database import get_connection_manager
from sentinela.shared.utils import configure_pii_salt_from_env, fingerprint_message, hash_subject_id
from .config import AppointmentConfig, EngineConfig, get_term_lists
from .contextual_analyzer import ContextualAnalyzer
from .engine import RiskAssessmentEngine
from .keyword_catalog import InMemoryKeywordCatalog, KeywordCatalog, PostgresKeywordCatalog
from .risk_alert_publisher import RiskAlertPublisher

logger = logging.getLogger(__name__)

app = Flask(__name__)

configure_pii_salt_from_env()


def _build_catalog() -> KeywordCatalog:
    """JSON export when KEYWORD_CATALOG_PATH is set, PostgreSQL otherwise."""
    path = os.getenv("KEYWORD_CATALOG_PATH")
    if path:
        with open(path, encoding="utf-8") as f:
            return InMemoryKeywordCatalog.from_records(json.load(f))
    return PostgresKeywordCatalog(get_connection_manager())


def _build_engine() -> RiskAssessmentEngine:
    appointment_config = AppointmentConfig.from_env()

    contextual_analyzer = None
    llm_config = LLMConfig.from_env()
    if llm_config.api_key:
        contextual_analyzer = ContextualAnalyzer(
            create_llm(llm_config),
            appointment_url=appointment_config.scheduling_url,
            max_prompt_chars=llm_config.max_prompt_chars,
        )
    else:
        logger.warning("CONTEXTUAL_ANALYZER_DISABLED", extra={"reason": "no_api_key"})

    return RiskAssessmentEngine(
        catalog=_build_catalog(),
        contextual_analyzer=contextual_analyzer,
        config=EngineConfig.from_env(),
        appointment_config=appointment_config,
        term_lists=get_term_lists(),
    )


engine = _build_engine()
alert_publisher = RiskAlertPublisher.from_env()

# Single loop for the process; the LLM client's pooled connections are bound to it
_loop = asyncio.new_event_loop()
threading.Thread(target=_loop.run_forever, name="risk-engine-loop", daemon=True).start()


def _run(coro):
    """Run a coroutine on the service loop from a request thread."""
    return asyncio.run_coroutine_threadsafe(coro, _loop).result()


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint for ECS/ALB."""
    return jsonify({
        "status": "healthy",
        "service": "risk-engine",
        "term_lists_version": engine.term_lists.version,
    }), 200


@app.route("/ready", methods=["GET"])
def ready():
    """Readiness check - verifies the engine and its catalog database.

    Returns:
        200 if ready, 503 if not
    """
    if engine is None:
        return jsonify({"status": "not_ready", "reason": "engine_not_initialized"}), 503

    if isinstance(engine.catalog, PostgresKeywordCatalog):
        database = engine.catalog.connection_manager.health_check()
        if not database["healthy"]:
            return jsonify({
                "status": "not_ready",
                "reason": "catalog_database_unhealthy",
                "database": database,
            }), 503

    return jsonify({
        "status": "ready",
        "contextual_enabled": engine.contextual_analyzer is not None,
    }), 200


@app.route("/analyze", methods=["POST"])
def analyze_message():
    """Assess one conversation turn.

    Request Body:
        {
            "text": "Mensaje del usuario",
            "scope": "institution_001" (optional),
            "subject_id": "user_789" (optional),
            "use_contextual": true (optional)
        }

    Response:
        {
            "assessment": {...},
            "profile_snapshot": {...},
            "indicators": {...},
            "appointment": {...},
            "directives": {...}
        }
    """
    data = request.get_json(silent=True)
    if not data:
        logger.warning("ANALYZE_REQUEST_INVALID", extra={"reason": "empty_body"})
        return jsonify({"error": "Request body required"}), 400

    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        logger.warning("ANALYZE_REQUEST_INVALID", extra={"reason": "missing_text"})
        return jsonify({"error": "Missing required field: text"}), 400

    scope = data.get("scope")
    subject_id_hash = hash_subject_id(data.get("subject_id"))

    logger.info(
        "ANALYZE_REQUESTED",
        extra={
            "scope": scope,
            "subject_id_hash": subject_id_hash,
            "text_fingerprint": fingerprint_message(text),
            "text_length": len(text),
        }
    )

    try:
        turn = _run(engine.assess_turn(
            text,
            scope=scope,
            use_contextual=bool(data.get("use_contextual", True)),
        ))
    except Exception as e:
        logger.error(
            "ANALYZE_ERROR",
            extra={
                "subject_id_hash": subject_id_hash,
                "error": str(e),
                "error_type": type(e).__name__,
                "action": "DEFAULTING_TO_FALLBACK",
            }
        )
        result = engine.fallback.analyze(text, scope)
        return jsonify({
            "assessment": result.to_dict(),
            "profile_snapshot": result.to_profile_snapshot().to_dict(),
            "appointment": engine.advisor.decide(result, _detect_indicators(text, scope)).to_dict(),
            "error": "Analysis error - fallback assessment returned",
        }), 200  # Return 200 so the turn continues

    if turn.result.level.is_high:
        _publish_alert(subject_id_hash, scope, turn.result)

    return jsonify(turn.to_dict()), 200


def _detect_indicators(text, scope):
    """Indicators for the error path; None if detection fails too."""
    try:
        return engine.detector.detect(text, scope)
    except Exception as e:
        logger.error(
            "INDICATOR_DETECTION_FAILED",
            extra={"error": str(e), "error_type": type(e).__name__}
        )
        return None


def _publish_alert(subject_id_hash, scope, result) -> None:
    logger.critical(
        "HIGH_RISK_DETECTED",
        extra={
            "subject_id_hash": subject_id_hash,
            "scope": scope,
            "risk_level": result.level.value,
            "risk_score": result.score,
            "action": "PUBLISHING_RISK_ALERT",
        }
    )

    published = alert_publisher.publish_risk_alert(subject_id_hash, scope, result)
    if not published:
        logger.error(
            "RISK_ALERT_NOT_PUBLISHED",
            extra={"subject_id_hash": subject_id_hash, "scope": scope}
        )


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    port = int(os.getenv("PORT", "8002"))
    app.run(host="0.0.0.0", port=port, debug=False)
