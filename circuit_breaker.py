"""
Circuit breaker for optional upstream resources.
Stops calling a failing resource for a cooldown period so lookups do not pay
its timeout on every request.
"""

from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional

from config import settings
from exceptions import OptionalResourceError, ProxyError
from logging_config import logger
from models import CircuitBreakerState, CircuitState


class CircuitBreaker:
    """Circuit breaker for one optional resource"""

    def __init__(
        self,
        resource: str,
        failure_threshold: Optional[int] = None,
        cooldown_seconds: Optional[int] = None,
    ):
        self.resource = resource
        self.failure_threshold = failure_threshold or settings.CIRCUIT_FAILURE_THRESHOLD
        self.cooldown_seconds = settings.CIRCUIT_COOLDOWN_SECONDS if cooldown_seconds is None else cooldown_seconds
        self.state = CircuitBreakerState(resource=resource)

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """
        Execute function with circuit breaker protection.
        Raises OptionalResourceError while the circuit is open; failures of
        the wrapped call are counted and re-raised.
        """
        state = self.state

        if state.state == CircuitState.OPEN:
            if state.next_attempt_time and datetime.now() >= state.next_attempt_time:
                state.state = CircuitState.HALF_OPEN
            else:
                raise OptionalResourceError(self.resource, f"circuit open until {state.next_attempt_time.isoformat()}")

        try:
            result = await func(*args, **kwargs)
        except ProxyError as e:
            state.failure_count += 1
            state.last_failure_time = datetime.now()

            if state.state == CircuitState.HALF_OPEN or state.failure_count >= self.failure_threshold:
                state.state = CircuitState.OPEN
                state.next_attempt_time = datetime.now() + timedelta(seconds=self.cooldown_seconds)

            logger.warning(f"Circuit breaker failure for {self.resource}: {e}")
            raise

        if state.state == CircuitState.HALF_OPEN or state.failure_count > 0:
            state.state = CircuitState.CLOSED
            state.failure_count = 0
            state.last_failure_time = None
            state.next_attempt_time = None

        return result
