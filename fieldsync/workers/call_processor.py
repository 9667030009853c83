"""
Call Processor Worker.

Runs one reconciliation pass per completed call: load the field schema,
read the record's current values, extract, and emit the batched update.
Webhook deliveries are processed as detached tasks so the sender gets its
acknowledgement immediately.

Replay a saved end-of-call report with:
    python -m fieldsync.workers.call_processor report.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Optional

from fieldsync.crm_client import CRMClient
from fieldsync.errors import FieldSyncError
from fieldsync.logging_config import get_logger, pass_context, setup_logging
from fieldsync.schemas.call import CallRecord
from fieldsync.schemas.update import UpdateResult
from fieldsync.services.extraction import extract_fields
from fieldsync.services.field_schema import FieldSchemaResolver
from fieldsync.services.update_emitter import UpdateEmitter

logger = get_logger(__name__)


class CallProcessor:
    """
    Owns the record store client and schema cache shared by every pass.

    Flow:
    1. Make sure the custom field schema is loaded
    2. Read the record's current values (counter, memory log)
    3. Extract fields from the call text
    4. Coerce, resolve conflicts and write in one request
    """

    def __init__(
        self,
        client: Optional[CRMClient] = None,
        resolver: Optional[FieldSchemaResolver] = None,
    ) -> None:
        self.client = client or CRMClient()
        self.resolver = resolver or FieldSchemaResolver(self.client)
        self.emitter = UpdateEmitter(self.client, self.resolver)
        self._tasks: set[asyncio.Task[UpdateResult]] = set()

    async def process(self, record: CallRecord) -> UpdateResult:
        """
        Run a full pass for ``record``.

        Fatal errors are converted into a failed UpdateResult here and
        nowhere else.
        """
        with pass_context(record.record_id):
            try:
                logger.info("pass_started", call_id=record.metadata.call_id)
                await self.resolver.initialize()

                current_values = await self.emitter.read_current_values(record.record_id)
                snapshot = record.existing_fields or self.emitter.snapshot_from(current_values)

                extraction = extract_fields(record, snapshot)
                result = await self.emitter.emit(record, extraction, current_values)
            except FieldSyncError as e:
                logger.error("pass_failed", error=str(e), error_type=type(e).__name__)
                return UpdateResult.failed(str(e))

            logger.info(
                "pass_complete",
                fields_updated=result.fields_updated,
                warnings=len(result.warnings),
            )
            return result

    def schedule(self, record: CallRecord) -> asyncio.Task[UpdateResult]:
        """Start a pass in the background and keep a reference until it ends."""
        task = asyncio.create_task(self._run_detached(record))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def close(self) -> None:
        """Wait for in-flight passes, then release the HTTP client."""
        if self._tasks:
            logger.info("waiting_for_passes", pending=len(self._tasks))
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.client.aclose()

    async def _run_detached(self, record: CallRecord) -> UpdateResult:
        try:
            return await self.process(record)
        except Exception as e:
            # Nobody awaits a detached pass; record the crash here.
            logger.exception("pass_crashed", record_id=record.record_id, error=str(e))
            return UpdateResult.failed(f"Unexpected error: {e}")


async def main(path: str) -> None:
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)

    record = CallRecord.from_webhook_payload(payload)
    processor = CallProcessor()
    try:
        result = await processor.process(record)
    finally:
        await processor.close()

    print(result.model_dump_json(indent=2))


if __name__ == "__main__":
    from dotenv import load_dotenv
    load_dotenv(".env.local")
    setup_logging()

    parser = argparse.ArgumentParser(description="Replay an end-of-call report")
    parser.add_argument("payload", help="Path to the webhook JSON body")
    args = parser.parse_args()

    asyncio.run(main(args.payload))
