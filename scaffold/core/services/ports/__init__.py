"""Port probing and negotiation."""

from scaffold.core.services.ports.negotiator import PortNegotiator
from scaffold.core.services.ports.prober import PortProber

__all__ = ["PortNegotiator", "PortProber"]
