"""Check that the environment holds what a deployment needs.

Exit code:
  0 = every required variable is present
  1 = at least one required variable is missing
"""
from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field

from dotenv import dotenv_values

REQUIRED_VARS = ("ENVIRONMENT", "DATABASE_URL", "JWT_SECRET", "JWT_REFRESH_SECRET")
RECOMMENDED_VARS = ("PORT", "FRONTEND_URL", "ALLOWED_ORIGINS", "RATE_LIMIT_MAX_REQUESTS")
OPTIONAL_VARS = (
    "REDIS_URL",
    "RATE_LIMIT_WINDOW_MINUTES",
    "EMAIL_FROM",
    "EMAIL_HOST",
    "SENTRY_DSN",
    "HEALTH_CHECK_KEY",
)

SENSITIVE_MARKERS = ("PASSWORD", "SECRET", "KEY", "DSN")
SECRET_VARS = ("JWT_SECRET", "JWT_REFRESH_SECRET")
MIN_SECRET_LENGTH = 32


@dataclass
class EnvReport:
    """Outcome of one verification run."""

    lines: list[str] = field(default_factory=list)
    missing_required: list[str] = field(default_factory=list)
    missing_recommended: list[str] = field(default_factory=list)
    present_optional: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing_required


def is_sensitive(name: str) -> bool:
    return any(marker in name for marker in SENSITIVE_MARKERS)


def mask(value: str) -> str:
    """Keep the first four characters of a secret."""
    return f"{value[:4]}****"


def _display(name: str, value: str) -> str:
    return mask(value) if is_sensitive(name) else value


def verify(env: Mapping[str, str]) -> EnvReport:
    report = EnvReport()

    for name in REQUIRED_VARS:
        value = env.get(name)
        if not value:
            report.missing_required.append(name)
            report.lines.append(f"[missing] {name} (required)")
        else:
            report.lines.append(f"[ok] {name}: {_display(name, value)}")

    for name in RECOMMENDED_VARS:
        value = env.get(name)
        if not value:
            report.missing_recommended.append(name)
            report.lines.append(f"[warn] {name} (recommended)")
        else:
            report.lines.append(f"[ok] {name}: {_display(name, value)}")

    for name in OPTIONAL_VARS:
        value = env.get(name)
        if value:
            report.present_optional.append(name)
            report.lines.append(f"[ok] {name}: {_display(name, value)}")

    for name in SECRET_VARS:
        value = env.get(name)
        if value and len(value) < MIN_SECRET_LENGTH:
            report.warnings.append(f"{name} should be at least {MIN_SECRET_LENGTH} characters long")

    secret, refresh_secret = env.get("JWT_SECRET"), env.get("JWT_REFRESH_SECRET")
    if env.get("ENVIRONMENT") == "production" and secret and secret == refresh_secret:
        report.warnings.append("JWT_SECRET and JWT_REFRESH_SECRET must differ in production")

    return report


def render(report: EnvReport) -> str:
    total_optional = len(OPTIONAL_VARS)
    out = ["Verifying environment variables...", "", *report.lines, "", "Summary:"]
    out.append(
        f"  required: {len(REQUIRED_VARS) - len(report.missing_required)}/{len(REQUIRED_VARS)} present"
    )
    out.append(
        f"  recommended: {len(RECOMMENDED_VARS) - len(report.missing_recommended)}"
        f"/{len(RECOMMENDED_VARS)} present"
    )
    out.append(f"  optional: {len(report.present_optional)}/{total_optional} present")
    if report.warnings:
        out.extend(["", "Security checks:", *(f"  [warn] {warning}" for warning in report.warnings)])
    if report.ok:
        out.extend(["", "Deployment ready: all required variables are present."])
        if report.missing_recommended:
            out.append("Consider adding: " + ", ".join(report.missing_recommended))
    else:
        out.extend(["", "Deployment blocked; missing required variables:"])
        out.extend(f"  - {name}" for name in report.missing_required)
    return "\n".join(out)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Verify deployment environment variables")
    parser.add_argument(
        "--env-file",
        default=None,
        help="Read variables from this dotenv file; the process environment takes precedence.",
    )
    args = parser.parse_args(argv)

    env: dict[str, str] = {}
    if args.env_file:
        if not os.path.exists(args.env_file):
            print(f"[verify-env] ERROR: {args.env_file} not found", file=sys.stderr)
            return 1
        env.update({key: value for key, value in dotenv_values(args.env_file).items() if value})
    env.update(os.environ)

    report = verify(env)
    print(render(report))
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
