"""
Action dispatcher - runs a rule's ordered action list against capability
providers.

Every action is attempted, in declared order. A provider that raises, times
out, returns False or is not wired up at all fails only that action.
"""

import asyncio
import logging
import re
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from home_ambient.core.errors import ProviderError
from home_ambient.modules.context import Context

from .adapter import ClimateController, DeviceController, Notifier, SceneActivator
from .models import (
    ActionConfig,
    ActionResult,
    DeviceSetAction,
    ExecutionOutcome,
    HvacSetAction,
    NotifyAction,
    SceneActivateAction,
    Trigger,
    UnknownAction,
)

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{(\w+)\}")
DEFAULT_USER = "someone"


def render_template(text: str, trigger: Optional[Trigger]) -> str:
    """
    Substitute {zone}, {user}, {type} and trigger payload keys.

    Missing keys become "", {user} falls back to "someone". Never raises.
    """
    values: Dict[str, Any] = {}
    if trigger is not None:
        values.update({k: v for k, v in trigger.payload.items() if v is not None})
        values["zone"] = trigger.zone
        values["type"] = trigger.type
        if trigger.user:
            values["user"] = trigger.user
    values.setdefault("user", DEFAULT_USER)

    def _sub(match: "re.Match[str]") -> str:
        return str(values.get(match.group(1), ""))

    return PLACEHOLDER.sub(_sub, text)


class ActionDispatcher:
    """
    Routes actions by type to the injected providers.

    Providers are optional; a missing one is reported as a ProviderError on
    the action that needed it.
    """

    def __init__(
        self,
        devices: Optional[DeviceController] = None,
        scenes: Optional[SceneActivator] = None,
        notifier: Optional[Notifier] = None,
        climate: Optional[ClimateController] = None,
        action_timeout: float = 10.0,
    ) -> None:
        if action_timeout <= 0:
            raise ValueError(f"action_timeout must be positive, got {action_timeout}")
        self.devices = devices
        self.scenes = scenes
        self.notifier = notifier
        self.climate = climate
        self.action_timeout = action_timeout

        self._handlers: Dict[type, Callable[[Any, Context, Optional[Trigger]], Awaitable[bool]]] = {
            DeviceSetAction: self._device_set,
            SceneActivateAction: self._scene_activate,
            NotifyAction: self._notify,
            HvacSetAction: self._hvac_set,
        }

    async def dispatch(
        self,
        actions: Sequence[ActionConfig],
        ctx: Context,
        trigger: Optional[Trigger] = None,
    ) -> ExecutionOutcome:
        """
        Execute actions strictly in order.

        Args:
            actions: The rule's action list
            ctx: Context for this evaluation
            trigger: Trigger being handled (for template substitution)

        Returns:
            ExecutionOutcome with one ActionResult per action
        """
        results: List[ActionResult] = []
        for index, action in enumerate(actions):
            results.append(await self._run_one(index, action, ctx, trigger))

        outcome = ExecutionOutcome.from_results(results)
        logger.debug(
            f"Dispatched {outcome.attempted} actions: {outcome.succeeded} ok, "
            f"{outcome.failed} failed ({outcome.status.value})"
        )
        return outcome

    async def _run_one(
        self,
        index: int,
        action: ActionConfig,
        ctx: Context,
        trigger: Optional[Trigger],
    ) -> ActionResult:
        handler = self._handlers.get(type(action))
        if handler is None:
            kind = action.type if isinstance(action, UnknownAction) else type(action).__name__
            logger.warning(f"Unknown action type '{kind}', skipping")
            return ActionResult(index=index, action_type=kind, success=False, skipped=True)

        started = time.monotonic()
        error: Optional[str] = None
        try:
            ok = await asyncio.wait_for(handler(action, ctx, trigger), timeout=self.action_timeout)
            if not ok:
                error = "provider reported failure"
        except asyncio.TimeoutError:
            error = f"timed out after {self.action_timeout}s"
        except ProviderError as e:
            error = str(e)
        except Exception as e:
            error = f"{type(e).__name__}: {e}"

        duration_ms = int((time.monotonic() - started) * 1000)
        if error is not None:
            logger.warning(f"Action {index} ({action.action_type}) failed: {error}")
        return ActionResult(
            index=index,
            action_type=action.action_type,
            success=error is None,
            error=error,
            duration_ms=duration_ms,
        )

    # =========================================================================
    # Action Implementations
    # =========================================================================

    async def _device_set(
        self, action: DeviceSetAction, ctx: Context, trigger: Optional[Trigger]
    ) -> bool:
        if self.devices is None:
            raise ProviderError("devices", "no device controller configured")
        logger.info(f"Executing: {action.device_id}.{action.capability} = {action.value!r}")
        return await self.devices.set(action.device_id, action.capability, action.value)

    async def _scene_activate(
        self, action: SceneActivateAction, ctx: Context, trigger: Optional[Trigger]
    ) -> bool:
        if self.scenes is None:
            raise ProviderError("scenes", "no scene activator configured")
        logger.info(f"Executing: scene {action.scene_id}")
        return await self.scenes.activate(action.scene_id)

    async def _notify(
        self, action: NotifyAction, ctx: Context, trigger: Optional[Trigger]
    ) -> bool:
        if self.notifier is None:
            raise ProviderError("notifier", "no notifier configured")
        title = render_template(action.title, trigger)
        body = render_template(action.message, trigger)
        metadata: Dict[str, Any] = {"time_of_day": ctx.time_of_day.value}
        if trigger is not None:
            metadata.update({"trigger": trigger.type, "zone": trigger.zone})
        logger.info(f"Executing: notify '{title}'")
        return await self.notifier.send(title, body, metadata)

    async def _hvac_set(
        self, action: HvacSetAction, ctx: Context, trigger: Optional[Trigger]
    ) -> bool:
        if self.climate is None:
            raise ProviderError("climate", "no climate controller configured")
        logger.info(f"Executing: hvac {action.mode} {action.temperature}")
        if not await self.climate.set_mode(action.mode):
            return False
        if action.temperature is not None:
            return await self.climate.set_target(action.temperature)
        return True
