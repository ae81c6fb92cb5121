"""Per-call metrics sink for extraction strategies."""

from pydantic import BaseModel, ConfigDict, Field


class StrategyMetrics(BaseModel):
    """Counts which extraction strategies were tried and which one won.

    The caller owns an instance and passes it into ``extract()``; nothing
    in the package keeps counters of its own.
    """

    model_config = ConfigDict(frozen=False)

    attempts: dict[str, int] = Field(default_factory=dict)
    successes: dict[str, int] = Field(default_factory=dict)
    total_calls: int = 0
    failed_calls: int = 0

    def record_attempt(self, strategy: str) -> None:
        self.attempts[strategy] = self.attempts.get(strategy, 0) + 1

    def record_success(self, strategy: str) -> None:
        self.total_calls += 1
        self.successes[strategy] = self.successes.get(strategy, 0) + 1

    def record_failure(self) -> None:
        self.total_calls += 1
        self.failed_calls += 1

    def success_rate(self, strategy: str) -> float:
        attempts = self.attempts.get(strategy, 0)
        if attempts == 0:
            return 0.0
        return self.successes.get(strategy, 0) / attempts

    def overall_success_rate(self) -> float:
        if self.total_calls == 0:
            return 0.0
        return (self.total_calls - self.failed_calls) / self.total_calls

    def summary(self) -> str:
        """Return a one-line human summary for logging."""
        rate = self.overall_success_rate() * 100
        winners = ", ".join(
            f"{name}={count}" for name, count in sorted(self.successes.items())
        ) or "none"
        return (
            f"Extraction: {rate:.1f}% success "
            f"({self.total_calls - self.failed_calls}/{self.total_calls}); "
            f"winning strategies: {winners}"
        )

    def reset(self) -> None:
        self.attempts.clear()
        self.successes.clear()
        self.total_calls = 0
        self.failed_calls = 0
