"""
Run one audit end to end from the CLI against the in-memory job store.
"""

from __future__ import annotations

import argparse
import json
import logging

from app.services.audit_orchestrator_service import AuditOrchestratorService, InlineTaskExecutor
from app.services.audit_pipeline import AuditPipeline
from app.services.job_state_machine import AuditJobStateMachine
from app.storage.factory import get_retention_policy
from app.storage.memory_storage import InMemoryJobStore


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a website messaging audit.")
    parser.add_argument("url", help="Website to audit.")
    parser.add_argument(
        "--competitor",
        dest="competitors",
        action="append",
        default=[],
        help="Competitor domain to analyze after the audit. Repeatable.",
    )
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    state_machine = AuditJobStateMachine(
        store=InMemoryJobStore(),
        retention=get_retention_policy(),
    )
    service = AuditOrchestratorService(
        state_machine=state_machine,
        pipeline=AuditPipeline(state_machine=state_machine),
    )
    executor = InlineTaskExecutor()

    job = service.create_audit(url=args.url)
    # The first poll claims the job and runs the pipeline inline.
    job = service.get_job_status(job_id=job.id, executor=executor)

    if args.competitors and job.status == "complete":
        job = service.request_enrichment(
            job_id=job.id,
            executor=executor,
            competitors=args.competitors,
        ).job
        job = state_machine.require(job.id)

    print(json.dumps(job.model_dump(mode="json", by_alias=True), indent=2))
    return 0 if job.status == "complete" else 1


if __name__ == "__main__":
    raise SystemExit(main())
