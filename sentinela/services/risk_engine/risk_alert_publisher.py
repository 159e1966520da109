"""Risk alert publisher.

Publishes an alert to a Kinesis stream when a turn lands at alto or
critico, so staff dashboards can react without polling chat history.
Publishing never blocks or fails the conversation turn.
"""
import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sentinela.shared.models import RiskAssessmentResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiskAlertEvent:
    """Immutable high-risk alert."""
    event_id: str
    subject_id_hash: str
    scope: Optional[str]
    risk_level: str
    risk_score: int
    keywords: List[str] = field(default_factory=list)
    source: str = ""
    pattern_version: str = ""
    event_type: str = "risk.alert.raised"
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_kinesis_payload(self) -> dict:
        """Dictionary for the Kinesis put_record Data field."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat() + "Z",
            "source": "risk-engine",
            "data": {
                "subject_id_hash": self.subject_id_hash,
                "scope": self.scope,
                "risk_level": self.risk_level,
                "risk_score": self.risk_score,
                "keywords": self.keywords,
                "assessment_source": self.source,
                "pattern_version": self.pattern_version,
            }
        }


class RiskAlertPublisher:
    """Publishes high-risk alerts to Kinesis.

    Failure Handling:
        - Publishing failure does NOT block the reply
        - Failures are logged at CRITICAL level for alerting
    """

    def __init__(
        self,
        stream_name: str = "sentinela-risk-alerts",
        enabled: bool = True,
        region: Optional[str] = None,
    ):
        """Initialize publisher.

        Args:
            stream_name: Kinesis stream name
            enabled: Whether publishing is enabled (disable for local dev)
            region: AWS region (defaults to AWS_REGION env var)
        """
        self.stream_name = stream_name
        self.enabled = enabled
        self.region = region or os.getenv("AWS_REGION", "us-east-1")
        self._kinesis_client = None

        logger.info(
            "RISK_ALERT_PUBLISHER_INITIALIZED",
            extra={
                "stream_name": stream_name,
                "enabled": enabled,
                "region": self.region,
            }
        )

    @classmethod
    def from_env(cls) -> "RiskAlertPublisher":
        return cls(
            stream_name=os.getenv("RISK_ALERT_STREAM", "sentinela-risk-alerts"),
            enabled=os.getenv("RISK_ALERTS_ENABLED", "false").lower() == "true",
        )

    @property
    def kinesis_client(self):
        """Lazy initialization of Kinesis client."""
        if self._kinesis_client is None and self.enabled:
            try:
                import boto3
                self._kinesis_client = boto3.client(
                    "kinesis",
                    region_name=self.region,
                )
            except Exception as e:
                logger.error(
                    "KINESIS_CLIENT_INIT_FAILED",
                    extra={"error": str(e)}
                )
        return self._kinesis_client

    def publish_risk_alert(
        self,
        subject_id_hash: str,
        scope: Optional[str],
        result: RiskAssessmentResult,
    ) -> bool:
        """Publish an alert for a high-risk assessment.

        Args:
            subject_id_hash: Hashed subject identifier
            scope: Institution scope
            result: The assessment that triggered the alert

        Returns:
            True if published successfully, False otherwise
        """
        if not self.enabled:
            logger.info(
                "RISK_ALERT_SKIPPED",
                extra={
                    "subject_id_hash": subject_id_hash,
                    "reason": "publishing_disabled",
                }
            )
            return False

        event = RiskAlertEvent(
            event_id=f"evt_{uuid.uuid4().hex[:12]}",
            subject_id_hash=subject_id_hash,
            scope=scope,
            risk_level=result.level.value,
            risk_score=result.score,
            keywords=[kw.phrase for kw in result.detected_keywords],
            source=result.source.value,
            pattern_version=result.pattern_version,
        )
        payload = event.to_kinesis_payload()

        try:
            if self.kinesis_client is None:
                logger.critical(
                    "RISK_ALERT_FALLBACK_LOG",
                    extra={
                        "event_id": event.event_id,
                        "payload": json.dumps(payload),
                        "reason": "kinesis_client_unavailable",
                        "action": "MANUAL_PROCESSING_REQUIRED",
                    }
                )
                return False

            response = self.kinesis_client.put_record(
                StreamName=self.stream_name,
                Data=json.dumps(payload),
                PartitionKey=subject_id_hash,  # Same subject -> same shard
            )

            logger.critical(
                "RISK_ALERT_PUBLISHED",
                extra={
                    "event_id": event.event_id,
                    "subject_id_hash": subject_id_hash,
                    "scope": scope,
                    "risk_level": event.risk_level,
                    "shard_id": response.get("ShardId"),
                    "sequence_number": response.get("SequenceNumber"),
                }
            )
            return True

        except Exception as e:
            logger.critical(
                "RISK_ALERT_PUBLISH_FAILED",
                extra={
                    "event_id": event.event_id,
                    "subject_id_hash": subject_id_hash,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "MANUAL_REVIEW_REQUIRED",
                    "payload": json.dumps(payload),
                }
            )
            return False
