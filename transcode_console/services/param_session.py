"""AI-assisted ffmpeg parameter proposal: generate, test, fix, re-test.

A fix is only possible against the failure of the most recent test. Once a
fix is applied the recorded failure is dropped, so the corrected arguments
have to be tested again before another fix can be requested.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Tuple

from ..errors import AuthError, ConsoleError, PreconditionError, TransportError, ValidationError
from ..models import AIResult, FixRequest, GenerateRequest, PresetCreate, TestOutcome, TestRequest
from .api_client import ApiClient

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    GENERATED = "generated"
    GENERATE_FAILED = "generate_failed"
    TESTING = "testing"
    TESTED_SUCCESS = "tested_success"
    TESTED_FAILED = "tested_failed"
    FIXING = "fixing"
    FIX_FAILED = "fix_failed"


class ParamGenerationSession:
    def __init__(self, client: ApiClient):
        self.client = client
        self.state = SessionState.IDLE
        self.requirement = ""
        self.input_format = ""
        self.result: Optional[AIResult] = None
        self.last_test: Optional[TestOutcome] = None
        self.last_error: Optional[TestOutcome] = None
        self.busy = False

    @property
    def can_fix(self) -> bool:
        return self.result is not None and self.last_error is not None

    def reset(self) -> None:
        self.state = SessionState.IDLE
        self.requirement = ""
        self.input_format = ""
        self.result = None
        self.last_test = None
        self.last_error = None
        self.busy = False

    def preset_defaults(self) -> Tuple[str, str]:
        result = self._require_result()
        return result.name, result.description

    def _require_result(self) -> AIResult:
        if self.result is None:
            raise PreconditionError("Generate parameters first")
        return self.result

    async def generate(self, requirement: str, input_format: str = "", auto_test: bool = False) -> AIResult:
        requirement = requirement.strip()
        if not requirement:
            raise ValidationError("Describe the transcoding requirement")

        self.result = None
        self.last_test = None
        self.last_error = None
        self.requirement = requirement
        self.input_format = input_format.strip()
        self.state = SessionState.GENERATING
        self.busy = True
        try:
            result = await self.client.generate_params(GenerateRequest(
                requirement=self.requirement,
                input_format=self.input_format,
                auto_test=auto_test,
            ))
        except AuthError:
            self.reset()
            raise
        except ConsoleError as exc:
            self.state = SessionState.GENERATE_FAILED
            logger.warning("Parameter generation failed: %s", exc.message)
            raise
        finally:
            self.busy = False

        self.result = result
        self.state = SessionState.GENERATED
        if result.test_result is not None:
            logger.info(
                "Generated %s, auto-test %s after %s corrections",
                result.name, "passed" if result.test_result.success else "failed", result.test_result.retries,
            )
        else:
            logger.info("Generated %s", result.name)
        return result

    async def test(self, input_file: str) -> TestOutcome:
        result = self._require_result()
        input_file = input_file.strip()
        if not input_file:
            raise ValidationError("Enter a test input file")

        self.state = SessionState.TESTING
        self.busy = True
        try:
            outcome = await self.client.test_params(TestRequest(
                input_file=input_file,
                ffmpeg_args=result.ffmpeg_args,
                output_ext=result.output_ext,
            ))
        except AuthError:
            self.reset()
            raise
        except TransportError as exc:
            self._record_failure(TestOutcome(success=False, error=exc.message))
            raise
        finally:
            self.busy = False

        if outcome.success:
            self.last_test = outcome
            self.last_error = None
            self.state = SessionState.TESTED_SUCCESS
            logger.info("Parameters passed test on %s", input_file)
        else:
            self._record_failure(outcome)
        return outcome

    def _record_failure(self, outcome: TestOutcome) -> None:
        self.last_test = outcome
        self.last_error = outcome
        self.state = SessionState.TESTED_FAILED
        logger.info("Parameters failed test: %s", outcome.error)

    async def fix(self) -> AIResult:
        if not self.can_fix:
            raise PreconditionError("Nothing to fix")
        result = self.result
        failure = self.last_error

        self.state = SessionState.FIXING
        self.busy = True
        try:
            fixed = await self.client.fix_params(FixRequest(
                requirement=self.requirement,
                input_format=self.input_format,
                failed_args=result.ffmpeg_args,
                output_ext=result.output_ext,
                error_message=failure.error or "Unknown error",
                ffmpeg_output=failure.output,
            ))
        except AuthError:
            self.reset()
            raise
        except ConsoleError as exc:
            self.state = SessionState.FIX_FAILED
            logger.warning("Parameter fix failed: %s", exc.message)
            raise
        finally:
            self.busy = False

        result.ffmpeg_args = fixed.ffmpeg_args
        result.explanation = fixed.explanation
        if fixed.output_ext:
            result.output_ext = fixed.output_ext
        self.last_error = None
        self.last_test = None
        self.state = SessionState.GENERATED
        logger.info("Applied fix, %s args", len(result.ffmpeg_args))
        return result

    async def save_as_preset(self, name: str, description: str = "") -> str:
        result = self._require_result()
        name = name.strip()
        if not name:
            raise ValidationError("Preset name is required")
        try:
            preset_id = await self.client.create_preset(PresetCreate(
                name=name,
                description=description.strip(),
                ffmpeg_args=list(result.ffmpeg_args),
                output_ext=result.output_ext,
            ))
        except AuthError:
            self.reset()
            raise
        logger.info("Saved preset %s", preset_id)
        return preset_id
