"""Runtime context detection from environment variables only"""

from __future__ import annotations

import os
from typing import Mapping, Optional

from pdfpoppler.common.types import RuntimeContext

SERVERLESS_MARKERS: tuple[str, ...] = (
    "AWS_LAMBDA_FUNCTION_NAME",
    "AWS_LAMBDA_RUNTIME_API",
    "LAMBDA_RUNTIME_DIR",
    "_LAMBDA_SERVER_PORT",
)

CI_TRUE_MARKERS: tuple[str, ...] = ("CI", "GITHUB_ACTIONS")

CI_PRESENCE_MARKERS: tuple[str, ...] = (
    "TRAVIS",
    "CIRCLECI",
    "GITLAB_CI",
    "JENKINS_URL",
    "BUILDKITE",
    "TF_BUILD",  # Azure DevOps
)

TEST_RUNNER_MARKERS: tuple[str, ...] = ("PYTEST_CURRENT_TEST", "JEST_WORKER_ID")


def _any_set(environ: Mapping[str, str], names: tuple[str, ...]) -> bool:
    return any(environ.get(name) for name in names)


def serverless_check(environ: Mapping[str, str]) -> bool:
    """True inside a serverless function invocation"""
    return _any_set(environ, SERVERLESS_MARKERS)


def ci_check(environ: Mapping[str, str]) -> bool:
    """True on an unattended CI runner"""
    if any(environ.get(name) == "true" for name in CI_TRUE_MARKERS):
        return True
    return _any_set(environ, CI_PRESENCE_MARKERS)


def display_check(environ: Mapping[str, str]) -> bool:
    """True when a display is already attached"""
    return bool(environ.get("DISPLAY"))


def testRunner_check(environ: Mapping[str, str]) -> bool:
    """True under an unattended test runner"""
    return _any_set(environ, TEST_RUNNER_MARKERS)


def context_detect(environ: Optional[Mapping[str, str]] = None) -> RuntimeContext:
    """
    Compute the runtime context

    Args:
        environ: Environment variables (defaults to os.environ)

    Returns:
        Immutable RuntimeContext
    """
    if environ is None:
        environ = os.environ
    return RuntimeContext(
        is_serverless=serverless_check(environ),
        is_ci=ci_check(environ),
        has_display=display_check(environ),
        is_test_runner=testRunner_check(environ),
    )
