"""Harness configuration via Pydantic Settings.

Loads from environment variables (prefix: GATEWAY_E2E_) or .env.test file.

Usage:
    settings = HarnessSettings()                   # Auto-loads from env / .env.test
    settings = HarnessSettings(burst_tries=4)      # Override in tests
"""

from __future__ import annotations

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HarnessSettings(BaseSettings):
    """Configuration for the gateway verification suite.

    Defaults match a local kind cluster with the gateway installed in
    ``agentgateway-base``. Override via GATEWAY_E2E_ environment variables.
    """

    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_E2E_",
        env_file=".env.test",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Cluster access ---
    kubectl: str = "kubectl"
    kube_context: str = ""

    # --- Gateway under test ---
    gateway_name: str = "gateway"
    gateway_namespace: str = "agentgateway-base"
    gateway_port: int = 80
    host_header: str = "example.com"

    # --- Shared configuration applied once per session (comma-separated paths) ---
    base_manifests: str = ""

    # --- Timeouts (seconds) ---
    request_timeout: float = 10.0
    connect_timeout: float = 5.0
    retry_timeout: float = 30.0
    retry_interval: float = 0.1
    resource_wait_timeout: float = 120.0
    resource_poll_interval: float = 1.0
    kubectl_timeout: float = 60.0

    # Hard ceiling for the whole run; retry loops stop once it elapses.
    run_timeout: float | None = None

    # --- Rate limiting ---
    # One probe to establish state plus two to confirm it inside one window.
    burst_tries: int = Field(default=3, ge=2)

    # --- Operator switches ---
    skip_cleanup: bool = False
    log_level: str = "INFO"

    @field_validator("kube_context")
    @classmethod
    def reject_production_contexts(cls, v: str) -> str:
        """Safety check: refuse to deploy fixtures into non-test clusters."""
        lower = v.lower()
        if "prod" in lower:
            raise ValueError(f"Refusing to run against kube context: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def base_manifest_list(self) -> list[str]:
        """Parse comma-separated base manifests into a list of expanded paths."""
        return [
            os.path.expanduser(p.strip())
            for p in self.base_manifests.split(",")
            if p.strip()
        ]


def should_skip_cleanup() -> bool:
    """Read the operator skip-cleanup flag at the moment teardown runs."""
    return HarnessSettings().skip_cleanup
