"""Suite and scenario fixture lifecycle.

Fixture scoping:
    suite:     shared manifests (e.g. the rate limit server), applied once,
               confirmed present and running before any scenario
    scenario:  routes and policies for one test, applied before it and
               removed after it whatever the outcome

Cleanup is skipped when the operator sets GATEWAY_E2E_SKIP_CLEANUP, leaving
the cluster as it was for post-mortem inspection.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field

from gateway_e2e.config import should_skip_cleanup
from gateway_e2e.gateway import Gateway, NamespacedName
from gateway_e2e.kube import ClusterAssertions, Kubectl, ObjectRef, apply_all, delete_all

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PodSelector:
    namespace: str
    selector: str


@dataclass(frozen=True)
class FixtureSet:
    """Manifests plus the objects and pods they are expected to produce."""

    manifests: tuple[str, ...]
    resources: tuple[ObjectRef, ...] = ()
    pods: tuple[PodSelector, ...] = ()


@dataclass(frozen=True)
class SuiteLifecycle:
    """Deploys, awaits and removes fixtures for a suite and its scenarios."""

    kubectl: Kubectl
    cluster: ClusterAssertions
    skip_cleanup: Callable[[], bool] = field(default=should_skip_cleanup, compare=False)

    def setup_suite(self, fixtures: FixtureSet) -> None:
        """Apply shared fixtures and block until present and running."""
        apply_all(self.kubectl, fixtures.manifests)
        if fixtures.resources:
            self.cluster.eventually_objects_exist(*fixtures.resources)
        for pods in fixtures.pods:
            self.cluster.eventually_pods_running(pods.namespace, pods.selector)

    def teardown_suite(self, fixtures: FixtureSet) -> None:
        """Remove shared fixtures and block until they and their pods are gone."""
        if self.skip_cleanup():
            logger.warning("Skipping suite cleanup of %s", ", ".join(fixtures.manifests))
            return
        delete_all(self.kubectl, fixtures.manifests)
        if fixtures.resources:
            self.cluster.eventually_objects_not_exist(*fixtures.resources)
        for pods in fixtures.pods:
            self.cluster.eventually_pods_not_exist(pods.namespace, pods.selector)

    @contextmanager
    def suite(self, fixtures: FixtureSet) -> Generator[None, None, None]:
        """Hold shared fixtures for the duration of the ``with`` block.

        Teardown runs even when setup fails partway, so an applied manifest
        whose objects or pods never become ready is still removed.
        """
        try:
            self.setup_suite(fixtures)
            yield
        finally:
            self.teardown_suite(fixtures)

    @contextmanager
    def scenario(self, fixtures: FixtureSet) -> Generator[None, None, None]:
        """Apply scenario fixtures for the duration of the ``with`` block.

        Removal is registered before anything is applied, so a manifest that
        fails halfway through still gets cleaned up.
        """
        try:
            apply_all(self.kubectl, fixtures.manifests)
            if fixtures.resources:
                self.cluster.eventually_objects_exist(*fixtures.resources)
            yield
        finally:
            if self.skip_cleanup():
                logger.warning("Skipping scenario cleanup of %s", ", ".join(fixtures.manifests))
            else:
                delete_all(self.kubectl, fixtures.manifests)
                if fixtures.resources:
                    self.cluster.eventually_objects_not_exist(*fixtures.resources)

    def resolve_gateway(self, ref: NamespacedName, port: int = 80) -> Gateway:
        """Wait for the gateway to report an address and freeze it."""
        address = self.cluster.eventually_gateway_address(ref)
        return Gateway(ref=ref, address=address, port=port)


def fixture_set(
    manifests: Sequence[str],
    resources: Sequence[ObjectRef] = (),
    pods: Sequence[PodSelector] = (),
) -> FixtureSet:
    return FixtureSet(tuple(manifests), tuple(resources), tuple(pods))
