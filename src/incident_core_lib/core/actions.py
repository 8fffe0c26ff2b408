"""Remediation action execution.

``ActionExecutor`` is the capability that actually touches infrastructure.
``SimulatedActionExecutor`` only reports what it would have done.
"""

import asyncio
import logging
from abc import ABC, abstractmethod

from incident_core_lib.models.remediation import (
    ManualStep,
    RemediationAction,
    RestartService,
    ScaleCluster,
)

logger = logging.getLogger(__name__)


class ActionExecutor(ABC):
    """Executes remediation actions."""

    @abstractmethod
    async def execute(self, action: RemediationAction) -> str:
        """
        Run the action and return a human-readable outcome.

        Raises on failure; the caller records the failure on the step.
        """
        pass


class SimulatedActionExecutor(ActionExecutor):
    """
    Action executor that performs nothing.

    Args:
        delay: Simulated latency per action, in seconds
    """

    def __init__(self, delay: float = 0.0):
        self.delay = delay

    async def execute(self, action: RemediationAction) -> str:
        logger.info(f"Simulating execution of action: {action!r}")

        if self.delay > 0:
            await asyncio.sleep(self.delay)

        if isinstance(action, RestartService):
            return f"Service {action.service_name} restarted successfully."
        if isinstance(action, ScaleCluster):
            return f"Cluster {action.cluster_id} scaled to {action.desired_capacity} nodes."
        if isinstance(action, ManualStep):
            return f"Manual step recorded: {action.instructions}"
        raise ValueError(f"Unsupported remediation action: {type(action).__name__}")
