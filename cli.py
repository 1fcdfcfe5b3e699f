"""Transcript parser command-line client.

Usage:
    python cli.py summarize <pdf>... (--prompt TEXT | --prompt-file PATH | --saved NAME)
                  [--provider openai] [--model NAME] [-d output_dir]
    python cli.py prompts list
    python cli.py prompts save <name> (--text TEXT | --file PATH)
    python cli.py prompts delete <name>

The backend URL and bearer credential come from --backend-url/--token or
the BACKEND_URL / TRANSCRIPT_PARSER_TOKEN environment variables.
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import List, Optional
import httpx
from config.settings import settings
from core.backend_client import BackendStreamClient, static_credential
from core.batch import Batch, BatchCoordinator, prepare_sources
from core.entities import ProviderConfig, SourceFile
from core.pdf_text import extract_source
from model.job import Job, JobStatus
from util import functions
from util.enums import ProviderId
from util.errors import BatchRejected
from util.logger import init_logger


TOKEN_ENV = "TRANSCRIPT_PARSER_TOKEN"


def _api_root(backend_url: str) -> str:
    # .../api/v1/llm -> .../api/v1
    return backend_url.rstrip("/").rsplit("/", 1)[0]


def _auth_headers(token: Optional[str]) -> dict:
    return {"Authorization": f"Bearer {token}"} if token else {}


def _load_sources(paths: List[str]) -> List[SourceFile]:
    sources: List[SourceFile] = []
    for raw in paths:
        path = Path(raw)
        if not path.is_file():
            print(f"skipping {raw}: not a file", file=sys.stderr)
            continue
        sources.append(SourceFile(filename=path.name, data=path.read_bytes()))
    return prepare_sources(sources)


async def _saved_prompt(args: argparse.Namespace, name: str) -> Optional[str]:
    async with httpx.AsyncClient(timeout=10.0) as client:
        res = await client.get(
            f"{_api_root(args.backend_url)}/prompts", headers=_auth_headers(args.token)
        )
        res.raise_for_status()
    for item in res.json().get("prompts", []):
        if item.get("name") == name:
            return item.get("text")
    return None


async def _resolve_prompt(args: argparse.Namespace) -> str:
    if args.prompt_file:
        return Path(args.prompt_file).read_text(encoding="utf-8")
    if args.saved:
        text = await _saved_prompt(args, args.saved)
        if text is None:
            print(f'error: no saved prompt named "{args.saved}"', file=sys.stderr)
            sys.exit(1)
        return text
    return args.prompt or ""


# --- summarize subcommand ---


async def cmd_summarize(args: argparse.Namespace) -> int:
    sources = _load_sources(args.inputs)
    prompt = await _resolve_prompt(args)
    config = ProviderConfig(provider=ProviderId(args.provider), model_name=args.model)

    output_dir = Path(args.output_dir)
    llm = BackendStreamClient(args.backend_url, credential=static_credential(args.token))
    coordinator = BatchCoordinator(
        extract=extract_source, llm=llm, job_timeout=settings.JOB_TIMEOUT_SECONDS
    )

    last_status: dict = {}

    def on_update(batch: Batch, job: Job) -> None:
        # One line per transition; increments are not printed.
        idx = batch.index_of(job)
        if last_status.get(idx) != job.status:
            last_status[idx] = job.status
            print(f"[{idx + 1}/{len(batch)}] {job.filename}: {job.statusMessage}")

    try:
        batch = await coordinator.start(sources, prompt, config, on_update=on_update)
    except BatchRejected as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    output_dir.mkdir(parents=True, exist_ok=True)
    for job in batch.jobs:
        if job.status != JobStatus.complete:
            continue
        target = output_dir / f"{Path(job.filename).stem}.md"
        target.write_text(functions.clean_output(job.output) + "\n", encoding="utf-8")
        print(f"  saved {target}")

    failed = batch.count(JobStatus.failed)
    print(f"\ndone: {batch.count(JobStatus.complete)} complete, {failed} failed")
    return 1 if failed else 0


# --- prompts subcommand ---


async def cmd_prompts(args: argparse.Namespace) -> int:
    root = f"{_api_root(args.backend_url)}/prompts"
    headers = _auth_headers(args.token)
    async with httpx.AsyncClient(timeout=10.0) as client:
        if args.action == "list":
            res = await client.get(root, headers=headers)
        elif args.action == "save":
            text = (
                Path(args.file).read_text(encoding="utf-8") if args.file else args.text
            )
            res = await client.put(
                f"{root}/{args.name}", headers=headers, json={"text": text or ""}
            )
        else:
            res = await client.delete(f"{root}/{args.name}", headers=headers)

    data = res.json() if res.content else {}
    if res.status_code // 100 != 2:
        print(f"error: {data.get('error') or res.reason_phrase}", file=sys.stderr)
        return 1
    if args.action == "list":
        for item in data.get("prompts", []):
            first_line = (item.get("text") or "").strip().splitlines()[:1]
            print(f"{item['name']}: {first_line[0] if first_line else ''}")
    else:
        print(data.get("message", "ok"))
    return 0


# --- Main CLI ---


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="transcript-parser",
        description="Summarize PDF transcripts with an LLM, one file per job",
    )
    parser.add_argument("--backend-url", default=settings.BACKEND_URL, help="streaming endpoint URL")
    parser.add_argument("--token", default=os.getenv(TOKEN_ENV), help=f"bearer credential (default: ${TOKEN_ENV})")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    subparsers = parser.add_subparsers(dest="command", help="available commands")

    # --- summarize ---
    p_sum = subparsers.add_parser("summarize", help="run one prompt over several PDFs")
    p_sum.add_argument("inputs", nargs="+", help="PDF files (deduplicated by name)")
    source = p_sum.add_mutually_exclusive_group(required=True)
    source.add_argument("--prompt", help="prompt text")
    source.add_argument("--prompt-file", help="read the prompt from a file")
    source.add_argument("--saved", help="use a saved prompt by name")
    p_sum.add_argument("--provider", choices=[p.value for p in ProviderId], default=ProviderId.OPENAI.value, help="LLM provider (default: openai)")
    p_sum.add_argument("--model", help="model override (default: provider default)")
    p_sum.add_argument("-d", "--output-dir", default="summaries", help="where to write <stem>.md files")

    # --- prompts ---
    p_prompts = subparsers.add_parser("prompts", help="manage saved prompts")
    prompt_actions = p_prompts.add_subparsers(dest="action", required=True)
    prompt_actions.add_parser("list", help="list saved prompts")
    p_save = prompt_actions.add_parser("save", help="create or overwrite a prompt")
    p_save.add_argument("name")
    save_src = p_save.add_mutually_exclusive_group(required=True)
    save_src.add_argument("--text")
    save_src.add_argument("--file")
    p_delete = prompt_actions.add_parser("delete", help="delete a prompt")
    p_delete.add_argument("name")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    init_logger("DEBUG" if args.verbose else "WARNING")

    if args.command == "summarize":
        sys.exit(asyncio.run(cmd_summarize(args)))
    elif args.command == "prompts":
        sys.exit(asyncio.run(cmd_prompts(args)))


if __name__ == "__main__":
    main()
