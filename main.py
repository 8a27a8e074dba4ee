from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from leafwise.adapters.identify import IdentificationError, PlantIdentifier
from leafwise.adapters.llm import BasicLLMClient, LLMCallError, llm_config_from_settings
from leafwise.adapters.summarize import PlantSummarizer
from leafwise.config import Settings, get_settings
from leafwise.history import HistoryStore, get_history_store
from leafwise.images import load_image_bytes, probe_image, to_data_uri
from leafwise.report.composer import ReportExport, export_plant_report
from leafwise.report.errors import ReportExportError
from leafwise.share_text import clipboard_text, speech_text
from leafwise.storage import append_event, write_bytes_atomic
from leafwise.types import AttributeRecord, HistoryEntry


logger = logging.getLogger('leafwise')


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _error(message: str) -> int:
    _print_json({'status': 'error', 'message': message})
    return 2


def _entry_snapshot(entry: HistoryEntry, *, include_result: bool = True) -> dict:
    payload: dict = {
        'id': entry.id,
        'timestamp': entry.timestamp.isoformat(),
        'common_name': entry.result.common_name,
        'scientific_name': entry.result.scientific_name,
    }
    if include_result:
        payload['result'] = entry.result.model_dump(mode='json', by_alias=True)
    return payload


def _build_llm(settings: Settings) -> BasicLLMClient:
    return BasicLLMClient(llm_config_from_settings(settings))


def _pick_entry(store: HistoryStore, entry_id: str | None) -> HistoryEntry | None:
    if entry_id:
        return store.get(entry_id)
    return store.latest()


def _write_report(export: ReportExport, output_dir: Path) -> Path:
    path = output_dir / export.filename
    write_bytes_atomic(path, export.pdf_bytes)
    append_event('report_exported', path=str(path), pages=export.page_count, size_bytes=len(export.pdf_bytes))
    return path


async def _identify(settings: Settings, image_source: str) -> tuple[AttributeRecord, str]:
    data, _ = await load_image_bytes(
        image_source,
        max_bytes=settings.max_image_bytes,
        timeout_seconds=settings.image_fetch_timeout_seconds,
    )
    _, _, mime_type = await asyncio.to_thread(probe_image, data)
    photo_data_uri = to_data_uri(data, mime_type)
    identifier = PlantIdentifier(_build_llm(settings))
    record = await identifier.identify(photo_data_uri=photo_data_uri)
    return record, photo_data_uri


def cmd_identify(args: argparse.Namespace) -> int:
    settings = get_settings()
    try:
        record, photo_data_uri = asyncio.run(_identify(settings, args.image))
    except IdentificationError as exc:
        append_event('identification_failed', kind=exc.kind, error=str(exc))
        _print_json({'status': 'error', 'kind': exc.kind, 'message': str(exc)})
        return 2
    except (ReportExportError, ValueError) as exc:
        return _error(str(exc))

    payload: dict = {
        'status': 'ok',
        'result': record.model_dump(mode='json', by_alias=True),
    }
    append_event('identified', common_name=record.common_name)

    if not args.no_history:
        entry = get_history_store().add(image=photo_data_uri, result=record)
        payload['entry_id'] = entry.id

    if args.export:
        try:
            export = asyncio.run(export_plant_report(record=record, image=photo_data_uri, settings=settings))
        except (ReportExportError, ValueError) as exc:
            payload['export_error'] = str(exc)
        else:
            output_dir = Path(args.output_dir) if args.output_dir else settings.reports_dir()
            payload['report_pdf_path'] = str(_write_report(export, output_dir))
            payload['pages'] = export.page_count

    _print_json(payload)
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    settings = get_settings()
    if args.record:
        record_path = Path(args.record).expanduser()
        if not record_path.is_file():
            return _error(f'Record file not found: {record_path}')
        try:
            record = AttributeRecord.model_validate_json(record_path.read_text(encoding='utf-8'))
        except ValidationError as exc:
            return _error(f'Invalid record file {record_path}: {exc.error_count()} error(s)')
        image = args.image
    else:
        entry = _pick_entry(get_history_store(), args.entry_id)
        record = entry.result if entry is not None else None
        image = args.image or (entry.image if entry is not None else None)

    try:
        export = asyncio.run(export_plant_report(record=record, image=image, settings=settings))
    except (ReportExportError, ValueError) as exc:
        append_event('report_export_failed', error=f'{type(exc).__name__}: {exc}')
        return _error(str(exc))

    output_dir = Path(args.output_dir) if args.output_dir else settings.reports_dir()
    path = _write_report(export, output_dir)
    _print_json({'status': 'ok', 'report_pdf_path': str(path), 'filename': export.filename, 'pages': export.page_count})
    return 0


def cmd_history_list(args: argparse.Namespace) -> int:
    entries = get_history_store().load()
    _print_json({'entries': [_entry_snapshot(entry, include_result=False) for entry in entries]})
    return 0


def cmd_history_show(args: argparse.Namespace) -> int:
    entry = get_history_store().get(args.entry_id)
    if entry is None:
        return _error(f'History entry not found: {args.entry_id}')
    _print_json(_entry_snapshot(entry))
    return 0


def cmd_history_clear(args: argparse.Namespace) -> int:
    get_history_store().clear()
    _print_json({'status': 'ok', 'message': 'History cleared.'})
    return 0


def cmd_summarize(args: argparse.Namespace) -> int:
    entry = _pick_entry(get_history_store(), args.entry_id)
    if entry is None:
        return _error('No identification in history to summarize.')
    summarizer = PlantSummarizer(_build_llm(get_settings()))
    try:
        summary = asyncio.run(summarizer.summarize(entry.result))
    except LLMCallError as exc:
        _print_json({'status': 'error', 'kind': exc.kind, 'message': str(exc)})
        return 2
    _print_json({'status': 'ok', 'entry_id': entry.id, 'summary': summary})
    return 0


def cmd_text(args: argparse.Namespace) -> int:
    entry = _pick_entry(get_history_store(), args.entry_id)
    if entry is None:
        return _error('No identification in history.')
    render = speech_text if args.format == 'speech' else clipboard_text
    print(render(entry.result))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='LeafWise plant identification CLI')
    sub = parser.add_subparsers(dest='command', required=True)

    identify = sub.add_parser('identify', help='Identify a plant from a photo')
    identify.add_argument('--image', required=True, help='Image file path, http(s) URL or data URI')
    identify.add_argument('--no-history', action='store_true', help='Do not record the result in history')
    identify.add_argument('--export', action='store_true', help='Also export the PDF report')
    identify.add_argument('--output-dir', required=False, help='Directory for the exported PDF')
    identify.set_defaults(func=cmd_identify)

    export = sub.add_parser('export', help='Export a PDF report')
    export.add_argument('--entry-id', required=False, help='History entry ID (default: latest)')
    export.add_argument('--record', required=False, help='JSON file with an identification result')
    export.add_argument('--image', required=False, help='Image override: file path, http(s) URL or data URI')
    export.add_argument('--output-dir', required=False, help='Directory for the exported PDF')
    export.set_defaults(func=cmd_export)

    history = sub.add_parser('history', help='Browse recent identifications')
    history_sub = history.add_subparsers(dest='history_command', required=True)
    history_list = history_sub.add_parser('list', help='List recent identifications')
    history_list.set_defaults(func=cmd_history_list)
    history_show = history_sub.add_parser('show', help='Show one identification')
    history_show.add_argument('--entry-id', required=True, help='History entry ID')
    history_show.set_defaults(func=cmd_history_show)
    history_clear = history_sub.add_parser('clear', help='Remove all history entries')
    history_clear.set_defaults(func=cmd_history_clear)

    summarize = sub.add_parser('summarize', help='Summarize an identification for non-experts')
    summarize.add_argument('--entry-id', required=False, help='History entry ID (default: latest)')
    summarize.set_defaults(func=cmd_summarize)

    text = sub.add_parser('text', help='Print shareable plain text')
    text.add_argument('--format', choices=['speech', 'clipboard'], default='clipboard')
    text.add_argument('--entry-id', required=False, help='History entry ID (default: latest)')
    text.set_defaults(func=cmd_text)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(get_settings().log_level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )
    return int(args.func(args))


if __name__ == '__main__':
    raise SystemExit(main())
