"""kubectl-backed cluster helpers for the gateway suites.

Provides utilities for:
    - Applying and deleting manifest files
    - Waiting for objects to exist / disappear
    - Waiting for pods to run / terminate
    - Resolving the address a Gateway reports in its status

All waits go through ``gateway_e2e.retry.eventually``. kubectl invocations
return immutable KubectlResult objects.
"""

from __future__ import annotations

import json
import logging
import subprocess
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from gateway_e2e.errors import KubectlError
from gateway_e2e.gateway import NamespacedName
from gateway_e2e.retry import RetryPolicy, eventually

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Object references
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ObjectRef:
    """A namespaced Kubernetes object, addressed the way kubectl takes it.

    ``kind`` is any resource name kubectl accepts: ``deployment``,
    ``httproute.gateway.networking.k8s.io``, ``agentgatewaypolicy``...
    """

    kind: str
    name: str
    namespace: str

    def __str__(self) -> str:
        return f"{self.kind}/{self.name} -n {self.namespace}"


# ---------------------------------------------------------------------------
# Result model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KubectlResult:
    """Result from a kubectl subprocess invocation."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def not_found(self) -> bool:
        return not self.ok and "NotFound" in self.stderr


# ---------------------------------------------------------------------------
# kubectl wrapper
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Kubectl:
    """Thin wrapper over the kubectl binary.

    Args:
        binary: kubectl executable.
        context: Kube context to pin every call to (empty: current context).
        timeout: Seconds before a single invocation is abandoned.
    """

    binary: str = "kubectl"
    context: str = ""
    timeout: float = 60.0

    def run(self, *args: str) -> KubectlResult:
        """Run kubectl with ``args`` and return a KubectlResult."""
        cmd = [self.binary]
        if self.context:
            cmd += ["--context", self.context]
        cmd += list(args)
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
            return KubectlResult(
                exit_code=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        except subprocess.TimeoutExpired:
            return KubectlResult(exit_code=-1, stdout="", stderr=f"Timeout after {self.timeout}s")
        except FileNotFoundError:
            return KubectlResult(exit_code=-1, stdout="", stderr=f"{self.binary} not found in PATH")

    def apply_file(self, path: str) -> None:
        """Apply a manifest file.

        Raises:
            KubectlError: If kubectl rejects the manifest.
        """
        result = self.run("apply", "-f", path)
        if not result.ok:
            raise KubectlError(f"can apply {path}: {result.stderr.strip()}")
        logger.info("Applied %s", path)

    def delete_file_safe(self, path: str) -> None:
        """Delete the objects of a manifest file, tolerating absent ones.

        Raises:
            KubectlError: If kubectl fails for any reason other than absence.
        """
        result = self.run("delete", "-f", path, "--ignore-not-found=true", "--wait=false")
        if not result.ok:
            raise KubectlError(f"can delete {path}: {result.stderr.strip()}")
        logger.info("Deleted %s", path)

    def get(self, ref: ObjectRef) -> KubectlResult:
        return self.run("get", ref.kind, ref.name, "-n", ref.namespace, "-o", "json")

    def get_json(self, *args: str) -> Any:
        """Run ``kubectl get ... -o json`` and parse the output.

        Raises:
            AssertionError: If the call failed (so pollers keep polling).
        """
        result = self.run("get", *args, "-o", "json")
        if not result.ok:
            raise AssertionError(f"kubectl get {' '.join(args)} failed: {result.stderr.strip()}")
        return json.loads(result.stdout)


# ---------------------------------------------------------------------------
# Eventual assertions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClusterAssertions:
    """Blocking cluster-state assertions with their own duration budget."""

    kubectl: Kubectl
    policy: RetryPolicy = field(default_factory=lambda: RetryPolicy(120.0, 1.0))
    cancel: threading.Event | None = field(default=None, compare=False)

    def _eventually(self, check: Callable[[], T]) -> T:
        return eventually(check, self.policy, cancel=self.cancel)

    def eventually_objects_exist(self, *refs: ObjectRef) -> None:
        """Block until every object in ``refs`` can be fetched."""

        def _check() -> None:
            missing = [str(ref) for ref in refs if not self.kubectl.get(ref).ok]
            if missing:
                raise AssertionError(f"objects not found yet: {missing}")

        self._eventually(_check)
        logger.info("Objects exist: %s", ", ".join(str(r) for r in refs))

    def eventually_objects_not_exist(self, *refs: ObjectRef) -> None:
        """Block until every object in ``refs`` is reported NotFound."""

        def _check() -> None:
            present = []
            for ref in refs:
                result = self.kubectl.get(ref)
                if not result.not_found:
                    present.append(str(ref))
            if present:
                raise AssertionError(f"objects still present: {present}")

        self._eventually(_check)
        logger.info("Objects gone: %s", ", ".join(str(r) for r in refs))

    def _pods(self, namespace: str, selector: str) -> list[dict[str, Any]]:
        data = self.kubectl.get_json("pods", "-n", namespace, "-l", selector)
        return data.get("items", [])

    def eventually_pods_running(self, namespace: str, selector: str) -> None:
        """Block until at least one pod matches and all matching pods are Running."""

        def _check() -> None:
            pods = self._pods(namespace, selector)
            if not pods:
                raise AssertionError(f"no pods match {selector} in {namespace}")
            phases = {
                pod["metadata"]["name"]: pod.get("status", {}).get("phase")
                for pod in pods
            }
            not_running = {name: phase for name, phase in phases.items() if phase != "Running"}
            if not_running:
                raise AssertionError(f"pods not running yet: {not_running}")

        self._eventually(_check)
        logger.info("Pods running: %s in %s", selector, namespace)

    def eventually_pods_not_exist(self, namespace: str, selector: str) -> None:
        """Block until no pod matches ``selector``."""

        def _check() -> None:
            pods = self._pods(namespace, selector)
            names = [pod["metadata"]["name"] for pod in pods]
            if names:
                raise AssertionError(f"pods still present: {names}")

        self._eventually(_check)
        logger.info("Pods gone: %s in %s", selector, namespace)

    def eventually_gateway_address(self, ref: NamespacedName) -> str:
        """Block until the Gateway is Programmed and reports an address."""

        def _check() -> str:
            gw = self.kubectl.get_json(
                "gateways.gateway.networking.k8s.io", ref.name, "-n", ref.namespace,
            )
            status = gw.get("status", {})
            conditions = {c.get("type"): c.get("status") for c in status.get("conditions", [])}
            if conditions.get("Programmed") != "True":
                raise AssertionError(f"gateway {ref} not programmed yet: {conditions}")
            addresses = [a.get("value") for a in status.get("addresses", []) if a.get("value")]
            if not addresses:
                raise AssertionError(f"gateway {ref} has no address yet")
            return addresses[0]

        address = self._eventually(_check)
        logger.info("Gateway %s reachable at %s", ref, address)
        return address


def apply_all(kubectl: Kubectl, manifests: Sequence[str]) -> None:
    for manifest in manifests:
        kubectl.apply_file(manifest)


def delete_all(kubectl: Kubectl, manifests: Sequence[str]) -> None:
    for manifest in reversed(manifests):
        kubectl.delete_file_safe(manifest)
