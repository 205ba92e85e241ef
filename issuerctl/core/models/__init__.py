"""
Domain models — Pydantic types for the issuer node installer.

All models are re-exported here for convenient access:

    from issuerctl.core.models import InstallationHome, ServiceUnit, Receipt
"""

from issuerctl.core.models.action import Action, Receipt
from issuerctl.core.models.artifact import BuildArtifact, BuildTarget
from issuerctl.core.models.dependency import Dependency, ProbeResult
from issuerctl.core.models.home import DEFAULT_HOME, InstallationHome
from issuerctl.core.models.resolver import NetworkParameters, ResolverSettings
from issuerctl.core.models.state import InstallState, StepRecord
from issuerctl.core.models.unit import ServiceUnit

__all__ = [
    # action.py
    "Action",
    # artifact.py
    "BuildArtifact",
    "BuildTarget",
    "DEFAULT_HOME",
    # dependency.py
    "Dependency",
    # home.py
    "InstallationHome",
    "InstallState",
    # resolver.py
    "NetworkParameters",
    "ProbeResult",
    "Receipt",
    "ResolverSettings",
    # unit.py
    "ServiceUnit",
    # state.py
    "StepRecord",
]
