from pybreaker import CircuitBreaker

from .config import settings

# Guards booking commits against a failing database
storage_circuit_breaker = CircuitBreaker(
    fail_max=settings.breaker_fail_max,
    reset_timeout=settings.breaker_reset_timeout,
    name="booking_storage_breaker",
)
