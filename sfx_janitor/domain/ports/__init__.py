"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the domain needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from sfx_janitor.domain.ports.monitoring_port import MonitoringPort

__all__ = [
    "MonitoringPort",
]
