"""Security, request-gating and upload helpers shared by the blueprints."""
