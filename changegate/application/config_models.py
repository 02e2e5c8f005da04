"""Check configuration models.

Config structure (.changegate/config.yml):
    checks:
      defaults: [typecheck, lint, test]
      timeout_seconds: 60
      strict_exit_code: false
      commands:
        test: pytest -q
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Built-in commands for the well-known check names
DEFAULT_CHECK_COMMANDS: dict[str, str] = {
    "syntax": "npx tsc --noEmit --skipLibCheck",
    "typecheck": "npx tsc --noEmit",
    "lint": 'npm run lint --silent 2>/dev/null || echo "lint script not found"',
    "test": 'npm test --silent 2>/dev/null || echo "test script not found"',
    "build": "npm run build --silent",
}

DEFAULT_CHECKS = ["typecheck", "lint", "test"]


class CheckConfig(BaseModel):
    """Check runner settings (parsed from YAML)."""

    model_config = ConfigDict(extra="forbid")

    defaults: list[str] = Field(default_factory=lambda: list(DEFAULT_CHECKS))
    timeout_seconds: float = 60
    commands: dict[str, str] = Field(default_factory=dict)
    strict_exit_code: bool = False
    max_output_chars: int = 2000
    max_error_output_chars: int = 1000

    @field_validator("timeout_seconds")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_seconds must be > 0")
        return v

    @field_validator("max_output_chars", "max_error_output_chars")
    @classmethod
    def _limits_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("output limits must be >= 1")
        return v

    def command_for(self, check_type: str) -> str | None:
        """Configured command, falling back to the built-in one."""
        return self.commands.get(check_type) or DEFAULT_CHECK_COMMANDS.get(check_type)

    def known_checks(self) -> list[str]:
        return sorted({*DEFAULT_CHECK_COMMANDS, *self.commands})


class ChangeGateConfig(BaseModel):
    """Top-level configuration."""

    model_config = ConfigDict(extra="forbid")

    checks: CheckConfig = Field(default_factory=CheckConfig)
    require_review_readiness: bool = True
