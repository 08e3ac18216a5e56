"""
Composition Root

Architectural Intent:
- Dependency injection composition root for the janitor
- Single place where the SignalFx adapter and use cases are wired together
- No adapter instantiation should occur outside this module

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- Credentials are taken from the loaded config and injected explicitly
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sfx_janitor.application.use_cases.mute_detector import MuteDetector
from sfx_janitor.application.use_cases.resolve_stale_incidents import (
    ResolveStaleIncidents,
)
from sfx_janitor.domain.services.staleness import StalenessPolicy
from sfx_janitor.infrastructure.adapters.signalfx_adapter import SignalFxAdapter
from sfx_janitor.infrastructure.config import JanitorConfig
from sfx_janitor.infrastructure.telemetry.otel_exporter import OTELExporter


@dataclass
class JanitorContainer:
    """DI container holding all wired dependencies."""

    monitoring: SignalFxAdapter
    resolve_stale: ResolveStaleIncidents
    mute_detector: MuteDetector
    telemetry: Optional[OTELExporter] = None


def create_container(
    config: JanitorConfig,
    telemetry: Optional[OTELExporter] = None,
    fail_fast: Optional[bool] = None,
) -> JanitorContainer:
    """Create and wire all dependencies.

    Raises:
        ConfigurationError: if SFX_TOKEN or SFX_ORG_ID is missing
    """
    credentials = config.require_credentials()

    monitoring = SignalFxAdapter(
        api_token=credentials.token,
        org_id=credentials.org_id,
        base_url=config.api.base_url,
        timeout=config.api.timeout_seconds or None,
        page_limit=config.api.page_limit,
        telemetry=telemetry,
    )
    policy = StalenessPolicy(
        max_age=timedelta(minutes=config.resolve.stale_after_minutes)
    )
    resolve_stale = ResolveStaleIncidents(
        monitoring,
        policy=policy,
        fail_fast=config.resolve.fail_fast if fail_fast is None else fail_fast,
        telemetry=telemetry,
    )
    mute_detector = MuteDetector(monitoring, telemetry=telemetry)

    return JanitorContainer(
        monitoring=monitoring,
        resolve_stale=resolve_stale,
        mute_detector=mute_detector,
        telemetry=telemetry,
    )
