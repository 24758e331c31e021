"""ProofPass: location-gated proof-of-attendance badges."""

__version__ = "0.1.0"
