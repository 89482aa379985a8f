"""Configuration management for deal-flow."""

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

from deal_flow.exceptions import ConfigurationError

KNOWN_SINKS = ("console", "json", "kafka", "memory")


@dataclass
class KafkaConfig:
    """Kafka producer configuration."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "batch.size": self.batch_size,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class OutputConfig:
    """Output configuration."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class NotificationConfig:
    """Which sinks receive notification events."""

    sinks: tuple[str, ...] = ("console",)
    topic_prefix: str = "dev.dealflow"

    @property
    def topic(self) -> str:
        """Kafka topic for notification events."""
        return f"{self.topic_prefix}.notifications"

    def validate(self) -> None:
        unknown = [name for name in self.sinks if name not in KNOWN_SINKS]
        if unknown:
            raise ConfigurationError(f"Unknown notification sinks: {', '.join(unknown)}")


@dataclass
class WorkflowConfig:
    """Business constants of the negotiation-to-contract workflow."""

    currency: str = "EGP"
    default_payment_method: str = "bank_transfer"
    reservation_ratio: Decimal = Decimal("0.10")
    meeting_lead_days: int = 3
    contract_installments: int = 3
    installment_interval_days: int = 30
    max_update_attempts: int = 3
    min_cash_offer_ratio: Decimal | None = None

    def validate(self) -> None:
        if not Decimal("0") < self.reservation_ratio <= Decimal("1"):
            raise ConfigurationError(
                f"reservation_ratio must be in (0, 1], got {self.reservation_ratio}"
            )
        if self.contract_installments < 1:
            raise ConfigurationError("contract_installments must be at least 1")
        if self.max_update_attempts < 1:
            raise ConfigurationError("max_update_attempts must be at least 1")
        if self.min_cash_offer_ratio is not None and not (
            Decimal("0") <= self.min_cash_offer_ratio <= Decimal("1")
        ):
            raise ConfigurationError(
                f"min_cash_offer_ratio must be in [0, 1], got {self.min_cash_offer_ratio}"
            )


@dataclass
class DealFlowConfig:
    """Main configuration for deal-flow."""

    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    conversation_ttl_seconds: float = 1800.0
    seed: int | None = None
    log_level: str = "INFO"

    def validate(self) -> "DealFlowConfig":
        """Validate nested sections, returning self for chaining."""
        self.notifications.validate()
        self.workflow.validate()
        if self.conversation_ttl_seconds <= 0:
            raise ConfigurationError("conversation_ttl_seconds must be positive")
        return self

    @classmethod
    def from_env(cls) -> "DealFlowConfig":
        """Create config from environment variables."""
        import os

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
        )

        output = OutputConfig(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        sinks_str = os.getenv("NOTIFICATION_SINKS", "console")
        notifications = NotificationConfig(
            sinks=tuple(s.strip() for s in sinks_str.split(",") if s.strip()),
            topic_prefix=os.getenv("TOPIC_PREFIX", "dev.dealflow"),
        )

        min_ratio = os.getenv("MIN_CASH_OFFER_RATIO")
        try:
            workflow = WorkflowConfig(
                currency=os.getenv("CURRENCY", "EGP"),
                default_payment_method=os.getenv("DEFAULT_PAYMENT_METHOD", "bank_transfer"),
                reservation_ratio=Decimal(os.getenv("RESERVATION_RATIO", "0.10")),
                meeting_lead_days=int(os.getenv("MEETING_LEAD_DAYS", "3")),
                contract_installments=int(os.getenv("CONTRACT_INSTALLMENTS", "3")),
                installment_interval_days=int(os.getenv("INSTALLMENT_INTERVAL_DAYS", "30")),
                max_update_attempts=int(os.getenv("MAX_UPDATE_ATTEMPTS", "3")),
                min_cash_offer_ratio=Decimal(min_ratio) if min_ratio else None,
            )
            ttl = float(os.getenv("CONVERSATION_TTL_SECONDS", "1800"))
            seed = int(os.getenv("SEED")) if os.getenv("SEED") else None
        except (ArithmeticError, ValueError) as e:
            raise ConfigurationError(f"Invalid environment configuration: {e}") from e

        return cls(
            kafka=kafka,
            output=output,
            notifications=notifications,
            workflow=workflow,
            conversation_ttl_seconds=ttl,
            seed=seed,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        ).validate()
