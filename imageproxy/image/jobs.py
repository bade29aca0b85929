"""Replicate-style deferred image generation client.

Processing flow:
    1. Submit a prediction job with fixed generation parameters.
    2. Poll the job status on a fixed interval, at most `max_attempts` times.
    3. On success, fetch the first output artifact and return its bytes.

States:
    SUBMITTING -> PENDING -> PROCESSING -> {SUCCEEDED, FAILED, TIMED_OUT,
    SUBMISSION_FAILED}. The last four are terminal; `run_job` returns as soon
    as one is reached.

Error handling strategy:
    - Non-2xx submission, status check or artifact fetch -> normalized error.
    - Job reported `failed` -> UPSTREAM_ERROR.
    - Poll ceiling reached -> TIMED_OUT. The job is abandoned upstream; no
      cancellation call is issued.
    - Transport failures -> UPSTREAM_ERROR (502).

Performance characteristics:
    Worst-case polling latency is `interval * max_attempts`. The sleep callable
    is injectable so tests run without waiting.
"""

import enum
import logging
import time
from dataclasses import dataclass

import requests

from imageproxy.core.errors import ErrorContext, normalize, timed_out, upstream_failure
from imageproxy.core.types import GeneratedImage


logger = logging.getLogger(__name__)

PREDICTIONS_URL = "https://api.replicate.com/v1/predictions"
DEFAULT_CONTENT_TYPE = "image/png"

GENERATION_PARAMS = {
    "num_outputs": 1,
    "num_inference_steps": 50,
    "guidance_scale": 7.5,
    "width": 512,
    "height": 512,
}

REPLICATE_CONTEXT = ErrorContext(
    provider="Replicate",
    fallback_message="Replicate API error",
)


class JobStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def terminal(self):
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)

    @classmethod
    def from_label(cls, label):
        """Map a vendor status label; unknown labels count as processing."""
        if label == "succeeded":
            return cls.SUCCEEDED
        if label == "failed":
            return cls.FAILED
        if label == "pending":
            return cls.PENDING
        return cls.PROCESSING


class JobState(enum.Enum):
    SUBMITTING = "submitting"
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    SUBMISSION_FAILED = "submission_failed"


@dataclass(frozen=True)
class PollPolicy:
    interval: float = 1.0
    max_attempts: int = 60


@dataclass
class Job:
    """A deferred-provider unit of work tracked by id."""

    id: str
    status: JobStatus = JobStatus.PENDING
    output_ref: str | None = None

    def advance(self, status, output_ref=None):
        """Move to `status`; terminal statuses are never left or re-entered."""
        if self.status.terminal:
            raise ValueError(f"Job {self.id} is already {self.status.value}")
        if status is JobStatus.PENDING and self.status is not JobStatus.PENDING:
            raise ValueError(f"Job {self.id} cannot return to pending")
        self.status = status
        if output_ref is not None:
            self.output_ref = output_ref


@dataclass
class JobResult:
    """Exit state of `run_job` together with the produced value."""

    state: JobState
    value: object
    polls: int = 0


def _first_output(output):
    if isinstance(output, str):
        return output or None
    if isinstance(output, list) and output and isinstance(output[0], str):
        return output[0]
    return None


def _json_or_none(response):
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def submit(prompt, api_key, version, *, session, timeout):
    """Create a prediction job.

    Returns:
        `Job` on success, `NormalizedError` otherwise.
    """
    response = session.post(
        PREDICTIONS_URL,
        headers={
            "Authorization": f"Token {api_key.strip()}",
            "Content-Type": "application/json",
        },
        json={"version": version, "input": {"prompt": prompt, **GENERATION_PARAMS}},
        timeout=timeout,
    )
    if not response.ok:
        return normalize(response.status_code, response.content, REPLICATE_CONTEXT)

    data = _json_or_none(response) or {}
    job_id = data.get("id")
    if not job_id:
        return upstream_failure("Replicate did not return a prediction id.")
    return Job(id=str(job_id))


def check_status(job, api_key, *, session, timeout):
    """Fetch and apply the current upstream status of `job`.

    Returns:
        `None` when the status was applied, `NormalizedError` when the status
        check itself failed.
    """
    response = session.get(
        f"{PREDICTIONS_URL}/{job.id}",
        headers={"Authorization": f"Token {api_key.strip()}"},
        timeout=timeout,
    )
    if not response.ok:
        return normalize(
            response.status_code,
            response.content,
            ErrorContext("Replicate", "Failed to check prediction status"),
        )

    data = _json_or_none(response) or {}
    label = data.get("status")
    logger.info("[Replicate] Status: %s", label)
    status = JobStatus.from_label(label)
    if status is JobStatus.PENDING and job.status is not JobStatus.PENDING:
        status = JobStatus.PROCESSING
    job.advance(status, _first_output(data.get("output")) if status is JobStatus.SUCCEEDED else None)
    return None


def fetch_artifact(url, *, session, timeout):
    response = session.get(url, timeout=timeout)
    if not response.ok:
        return normalize(
            response.status_code,
            response.content,
            ErrorContext("Replicate", "Failed to fetch generated image"),
        )
    return GeneratedImage(
        data=response.content,
        mime_type=response.headers.get("content-type") or DEFAULT_CONTENT_TYPE,
    )


def drive_job(prompt, api_key, policy, *, version, session, sleep=time.sleep, timeout=None):
    """Run the submit/poll/fetch state machine and report its exit state."""
    try:
        job = submit(prompt, api_key, version, session=session, timeout=timeout)
    except requests.exceptions.RequestException as err:
        logger.warning("[Replicate] Submission failed: %s", err)
        return JobResult(JobState.SUBMISSION_FAILED, upstream_failure(str(err), 502))

    if not isinstance(job, Job):
        logger.warning("[Replicate] Submission rejected: %s", job.message)
        return JobResult(JobState.SUBMISSION_FAILED, job)

    logger.info("[Replicate] Prediction created: %s", job.id)
    state = JobState.PENDING
    polls = 0

    for _ in range(policy.max_attempts):
        sleep(policy.interval)
        polls += 1
        try:
            failure = check_status(job, api_key, session=session, timeout=timeout)
        except requests.exceptions.RequestException as err:
            logger.warning("[Replicate] Status check failed: %s", err)
            return JobResult(JobState.FAILED, upstream_failure(str(err), 502), polls)

        if failure is not None:
            return JobResult(JobState.FAILED, failure, polls)

        if job.status is JobStatus.SUCCEEDED:
            state = JobState.SUCCEEDED
            break
        if job.status is JobStatus.FAILED:
            return JobResult(
                JobState.FAILED,
                upstream_failure("Image generation failed on Replicate"),
                polls,
            )
        if job.status is JobStatus.PROCESSING:
            state = JobState.PROCESSING

    if state is not JobState.SUCCEEDED:
        logger.warning("[Replicate] Prediction %s timed out after %s checks", job.id, polls)
        return JobResult(JobState.TIMED_OUT, timed_out(), polls)

    if not job.output_ref:
        return JobResult(
            JobState.FAILED,
            upstream_failure("Replicate finished but no image URL returned."),
            polls,
        )

    try:
        artifact = fetch_artifact(job.output_ref, session=session, timeout=timeout)
    except requests.exceptions.RequestException as err:
        logger.warning("[Replicate] Artifact fetch failed: %s", err)
        return JobResult(JobState.FAILED, upstream_failure(str(err), 502), polls)

    if not isinstance(artifact, GeneratedImage):
        return JobResult(JobState.FAILED, artifact, polls)
    return JobResult(JobState.SUCCEEDED, artifact, polls)


def run_job(prompt, api_key, policy, *, version, session, sleep=time.sleep, timeout=None):
    """Generate one image through the deferred provider.

    Returns:
        `GeneratedImage` or `NormalizedError`.
    """
    return drive_job(
        prompt,
        api_key,
        policy,
        version=version,
        session=session,
        sleep=sleep,
        timeout=timeout,
    ).value
