from __future__ import annotations

import asyncio
import sys

from .config import load_settings
from .core.errors import ComplaintError
from .importer import read_workbook, rows_to_engineers
from .lifecycle import ComplaintService
from .logging_config import setup_logging
from .sms import create_gateway
from .storage import create_backend


def main(argv: list[str] | None = None) -> int:
    """Load the store and optionally import an engineer workbook.

    Usage: ``python -m gas_complaints.main [engineers.xlsx]``
    """
    argv = sys.argv[1:] if argv is None else argv
    log = setup_logging()
    settings = load_settings()
    backend = create_backend(settings)
    gateway = create_gateway(settings)
    service = ComplaintService.build(backend, gateway)

    async def runner() -> int:
        try:
            await service.load()
            log.info(
                "Backend: %s. %d supervisors, %d executors, %d complaints.",
                "remote" if backend.is_remote else "local",
                len(service.directory.supervisors),
                len(service.directory.executors),
                len(service.state.complaints),
            )
            if argv:
                try:
                    engineers = rows_to_engineers(read_workbook(argv[0]))
                    await service.directory.import_engineers(engineers)
                except ComplaintError as exc:
                    log.error("Import failed: %s", exc.message)
                    return 1
                log.info("Imported %d engineers from %s", len(engineers), argv[0])
            return 0
        finally:
            await service.notifier.drain()
            await gateway.close()
            await backend.close()

    return asyncio.run(runner())


if __name__ == "__main__":
    raise SystemExit(main())
