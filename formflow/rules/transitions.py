"""
Transition Engine.

Navigation state machine over form steps.

next step selection, in order:
1. The review step is terminal unless the policy says otherwise -> None
2. More than one default transition out of the step -> AmbiguousDefaultTransitionError
3. Non-default transitions in declaration order: "when" rule, then guard;
   the first that passes wins
4. The default transition, if any
5. None: a dead end, which the caller handles (e.g. as ready to submit)

Guards come from context["guards"], a name -> fn(data, context) map. Only
an explicit False vetoes; a guard name with no function is ignored.

Every accepted transition goes into a bounded history (oldest evicted).
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from ..config import TransitionConfig
from ..errors import AmbiguousDefaultTransitionError
from ..schema.types import (
    FormSchema,
    ReviewPolicy,
    SchemaLike,
    StepTransition,
    TransitionType,
    as_schema,
)
from ..utils.logger import FormFlowLogger, get_logger
from .evaluator import RuleEvaluator
from .visibility import VisibilityController


# Context keys read by the engine
CONTEXT_GUARDS = "guards"
CONTEXT_REVIEW_POLICY = ("review_policy", "navigationReviewPolicy")


@dataclass(frozen=True)
class TransitionHistoryEntry:
    """One accepted transition. timestamp is epoch milliseconds."""
    from_step: str
    to_step: str
    type: TransitionType
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "from": self.from_step,
            "to": self.to_step,
            "type": self.type.value,
            "timestamp": self.timestamp,
        }


class TransitionEngine:
    """
    Decides next/previous steps for one form session.

    Not thread-safe: the history buffer is instance state.

    Attributes:
        evaluator: Rule evaluator for "when" rules (shared with visibility)
        visibility: Controller used for previous-step ordering
        config: History capacity, path bound and default review policy

    Example:
        engine = TransitionEngine()
        engine.get_next_step(schema, "intro", data)                # "details"
        engine.get_transition_path(schema, "intro", "review", data)
    """

    def __init__(
        self,
        evaluator: Optional[RuleEvaluator] = None,
        config: Optional[TransitionConfig] = None,
        logger: Optional[FormFlowLogger] = None,
    ):
        if config is None:
            from ..config import get_config

            config = get_config().transitions
        self.config = config
        self.logger = logger or get_logger()
        self.evaluator = evaluator or RuleEvaluator()
        self.visibility = VisibilityController(self.evaluator, self.logger)
        self._history: deque[TransitionHistoryEntry] = deque(maxlen=config.history_limit)

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def get_next_step(
        self,
        schema: SchemaLike,
        current_step: str,
        data: Any,
        context: Optional[Mapping[str, Any]] = None,
    ) -> Optional[str]:
        """
        Pick the step after current_step.

        Returns:
            Next step id, or None for a terminal review step or a dead end

        Raises:
            AmbiguousDefaultTransitionError: current_step has several defaults
        """
        schema = as_schema(schema)
        policy = self.resolve_review_policy(schema, context)
        if policy.terminal and current_step == policy.step_id:
            return None

        transitions = schema.transitions_from(current_step)
        defaults = [t for t in transitions if t.default]
        if len(defaults) > 1:
            raise AmbiguousDefaultTransitionError(current_step, [t.to_step for t in defaults])

        for transition in transitions:
            if transition.default:
                continue
            if transition.when is not None and not self.evaluator.evaluate(
                transition.when, data, context
            ):
                continue
            if self._guard_vetoes(transition, data, context):
                continue
            self._record(current_step, transition.to_step, TransitionType.CONDITIONAL)
            return transition.to_step

        if defaults:
            self._record(current_step, defaults[0].to_step, TransitionType.DEFAULT)
            return defaults[0].to_step

        return None

    def get_previous_step(
        self,
        schema: SchemaLike,
        current_step: str,
        data: Any,
        context: Optional[Mapping[str, Any]] = None,
    ) -> Optional[str]:
        """Predecessor of current_step among visible steps; None when first or hidden."""
        visible = self.visibility.get_visible_steps(schema, data, context)
        if current_step not in visible:
            return None
        index = visible.index(current_step)
        return visible[index - 1] if index > 0 else None

    def can_transition(
        self,
        schema: SchemaLike,
        from_step: str,
        to_step: str,
        data: Any,
        context: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """Whether get_next_step() from from_step lands on to_step."""
        return self.get_next_step(schema, from_step, data, context) == to_step

    def get_transition_path(
        self,
        schema: SchemaLike,
        start_step: str,
        end_step: str,
        data: Any,
        max_steps: Optional[int] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> list[str]:
        """
        Follow get_next_step() from start_step to end_step.

        Args:
            max_steps: Transitions to follow at most. Defaults to the configured bound.

        Returns:
            Step ids including both ends; [] when end_step is not reached in bound
        """
        schema = as_schema(schema)
        if max_steps is None:
            max_steps = self.config.max_path_steps

        path = [start_step]
        current = start_step
        steps_taken = 0
        while current != end_step and steps_taken < max_steps:
            next_step = self.get_next_step(schema, current, data, context)
            if next_step is None:
                return []
            path.append(next_step)
            current = next_step
            steps_taken += 1

        if current != end_step:
            self.logger.debug(
                f"No path {start_step} -> {end_step} within {max_steps} steps"
            )
            return []
        return path

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def get_transition_history(self) -> list[TransitionHistoryEntry]:
        """Copy of the history, oldest first."""
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    # -------------------------------------------------------------------------
    # Policy
    # -------------------------------------------------------------------------

    def resolve_review_policy(
        self,
        schema: FormSchema,
        context: Optional[Mapping[str, Any]] = None,
    ) -> ReviewPolicy:
        """
        Active review policy: context override, then schema, then configured default.

        A context override may be a ReviewPolicy or a dict; missing keys in a
        dict keep the values of the policy it overrides.
        """
        base = schema.navigation.review or ReviewPolicy(
            step_id=self.config.review_step_id,
            terminal=self.config.review_terminal,
        )
        if context:
            for key in CONTEXT_REVIEW_POLICY:
                override = context.get(key)
                if isinstance(override, ReviewPolicy):
                    return override
                if isinstance(override, Mapping):
                    return ReviewPolicy.from_dict(override, defaults=base)
        return base

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _guard_vetoes(
        transition: StepTransition,
        data: Any,
        context: Optional[Mapping[str, Any]],
    ) -> bool:
        if not transition.guard or not context:
            return False
        guards = context.get(CONTEXT_GUARDS)
        if not isinstance(guards, Mapping):
            return False
        guard_fn = guards.get(transition.guard)
        if guard_fn is None:
            return False
        return guard_fn(data, context) is False

    def _record(self, from_step: str, to_step: str, kind: TransitionType) -> None:
        self._history.append(TransitionHistoryEntry(
            from_step=from_step,
            to_step=to_step,
            type=kind,
            timestamp=int(time.time() * 1000),
        ))


__all__ = [
    "TransitionEngine",
    "TransitionHistoryEntry",
]
