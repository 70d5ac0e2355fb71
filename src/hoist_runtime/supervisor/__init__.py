"""Supervisor collaborators - service control and resource groups."""

from .models import Service
from .resource_manager import CgroupConfigurator
from .sv import SV, ServiceBuilder

__all__ = ["SV", "Service", "ServiceBuilder", "CgroupConfigurator"]
