"""
CLI tool to preview a template's extraction prompt or run it against a transcript.

Usage:
    python scripts/extract.py <template_id> [--transcript-id ID] [--describe]

Examples:
    # Print the prompt the "meeting-notes" template produces
    python scripts/extract.py meeting-notes

    # Run the template against an AssemblyAI transcript and print the fields
    python scripts/extract.py meeting-notes --transcript-id 5551722-f677-48a2
"""

import argparse
import asyncio
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dotenv import load_dotenv
load_dotenv(".env.local")

from datavox.logging_config import setup_logging, get_logger
from datavox.schemas.template import TemplateValidationError
from datavox.services.extraction_service import extract_structured_data
from datavox.services.prompt_generator import generate_prompt
from datavox.services.transcription_client import TranscriptionClient
from datavox.storage import create_storage
from datavox.stores.template_store import TemplateStore

setup_logging()
logger = get_logger(__name__)


async def run(template_id: str, transcript_id: str | None, describe: bool) -> int:
    store = TemplateStore(create_storage())
    await store.initialize()

    template = store.get(template_id)
    if template is None:
        print(f"Unknown template: {template_id}")
        print("Available:", ", ".join(t.id for ts in store.all().values() for t in ts))
        return 1

    if not transcript_id:
        print(generate_prompt(template, include_field_descriptions=describe))
        return 0

    async with TranscriptionClient() as client:
        try:
            outcome = await extract_structured_data(client, transcript_id, template)
        except TemplateValidationError as e:
            print(f"Template cannot be used: {e}")
            return 1

    if outcome.error:
        print(outcome.error)
        return 1

    for rendered in outcome.rendered.fields:
        print(f"{rendered.field_name}:")
        for line in rendered.as_text().splitlines() or [""]:
            print(f"  {line}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Preview or run a template extraction")
    parser.add_argument("template_id", help="Template ID (built-in or stored)")
    parser.add_argument("--transcript-id", help="AssemblyAI transcript to extract from")
    parser.add_argument(
        "--describe", action="store_true", help="Include field descriptions in the prompt"
    )

    args = parser.parse_args()
    sys.exit(asyncio.run(run(args.template_id, args.transcript_id, args.describe)))


if __name__ == "__main__":
    main()
