from time import perf_counter
from typing import Dict, Iterable, Optional

import requests
from requests.auth import HTTPBasicAuth

from mediaintake.clients.intake_response import parse_intake_response
from mediaintake.media.source_image import SourceImage
from mediaintake.shared.logging_utils import info as log_info, error as log_error
from mediaintake.shared.settings import IntakeSettings
from mediaintake.specs.common.enums import DEFAULT_PLATFORMS, PlatformId
from mediaintake.specs.common.errors import MalformedResponse, TransportError
from mediaintake.specs.models.domain import PromptSet, SubmissionResult

IMAGE_FIELD = "file"
MESSAGE_FIELD = "message"


def prompt_field_name(platform: PlatformId) -> str:
    return f"{PlatformId(platform).value}_prompt"


def build_form_fields(prompts: PromptSet, platforms: Iterable[PlatformId]) -> Dict[str, str]:
    """Text fields for the multipart body. Every platform is always present,
    empty strings included."""
    fields = {prompt_field_name(p): prompts.for_platform(p) for p in platforms}
    fields[MESSAGE_FIELD] = prompts.message
    return fields


class IntakeClient:
    """Submits the source image and prompt set to the intake webhook.

    Returns data only; applying it to workflow state is the caller's job.
    """

    def __init__(
        self,
        settings: IntakeSettings,
        *,
        session: Optional[requests.Session] = None,
        platforms: Iterable[PlatformId] = DEFAULT_PLATFORMS,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        self.platforms = tuple(PlatformId(p) for p in platforms)

    def submit(
        self,
        image: SourceImage,
        prompts: PromptSet,
        *,
        run_trace_id: Optional[str] = None,
    ) -> SubmissionResult:
        """Send one intake request.

        Error handling:
            - network failure or non-2xx status -> ``TransportError``
            - non-JSON body or no images collection -> ``MalformedResponse``
            - no platform resolved -> ``NoArtifactsError``
        """
        fields = build_form_fields(prompts, self.platforms)
        files = {IMAGE_FIELD: (image.filename, image.data, image.contentType)}
        auth = HTTPBasicAuth(self._settings.username, self._settings.password.get_secret_value())

        start = perf_counter()
        log_info(run_trace_id, "intake:submit", filename=image.filename, size=len(image.data))
        try:
            response = self._session.post(
                self._settings.intakeUrl,
                data=fields,
                files=files,
                auth=auth,
                timeout=self._settings.requestTimeout,
            )
        except requests.RequestException as exc:
            log_error(run_trace_id, "intake:transport_failed", error=str(exc))
            raise TransportError(f"Intake request failed: {exc}") from exc

        duration_ms = int((perf_counter() - start) * 1000)
        if not 200 <= response.status_code < 300:
            log_error(run_trace_id, "intake:http_error", status=response.status_code, durationMs=duration_ms)
            raise TransportError(
                f"Intake request failed with status {response.status_code}",
                details={"status": response.status_code, "body": (response.text or "")[:500]},
            )

        try:
            body = response.json()
        except ValueError as exc:
            log_error(run_trace_id, "intake:bad_json", durationMs=duration_ms)
            raise MalformedResponse("Intake response is not valid JSON") from exc

        result = parse_intake_response(body, self.platforms, run_trace_id=run_trace_id)
        log_info(
            run_trace_id,
            "intake:response",
            durationMs=duration_ms,
            platforms=[p.value for p in result.outputs],
            hasToken=result.token is not None,
        )
        return result


__all__ = ["IntakeClient", "build_form_fields", "prompt_field_name", "IMAGE_FIELD", "MESSAGE_FIELD"]
