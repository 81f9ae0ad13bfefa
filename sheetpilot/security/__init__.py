"""Security layer — capability gating against the live document."""

from sheetpilot.security.gate import ALLOW, CapabilityGate, GateDecision

__all__ = ["ALLOW", "CapabilityGate", "GateDecision"]
