import json
import logging
import sys
from pathlib import Path

import click

from .pipeline import (
    ArtifactKind,
    AtomicWriter,
    Bundler,
    DocumentRegistry,
    EnumRegistry,
    HintParser,
    InstanceSynthesizer,
    ParseMode,
    SchemaCompiler,
    SchemaHintsConfig,
    StorageLayout,
    extract_note_blocks,
)
from .pipeline.errors import HintParseError, SchemaHintsError, StorageError
from .pipeline.hints.nodes import Severity
from .pipeline.synthesizer import NO_SAMPLE
from .report import Outcome, RunReport
from .utils import dump_json

logger = logging.getLogger("schemahints")


def configure_logging(debug: bool) -> None:
    """Send package logs to stderr; DEBUG with --debug, WARNING otherwise."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)


def load_config(config_path, **overrides) -> SchemaHintsConfig:
    """Defaults, then the JSON config file, then command line flags that were given."""
    values = {}
    if config_path is not None:
        with open(config_path) as f:
            values = SchemaHintsConfig.from_dict(json.load(f)).to_dict()
    values.update({k: v for k, v in overrides.items() if v is not None})
    return SchemaHintsConfig.from_dict(values)


def finish(report: RunReport, expand_all: bool = False) -> None:
    click.echo(report.render_text(expand_all=expand_all))
    if report.failed:
        sys.exit(1)


common_options = [
    click.option("--config", "-c", "config_path", default=None, type=click.Path(exists=True, dir_okay=False)),
    click.option("--base-id", default=None, type=str, help="Identifier prefix for $id values"),
    click.option("--root", default=None, type=click.Path(file_okay=False), help="Corpus root directory"),
    click.option("--debug", is_flag=True, default=False, help="Verbose logging"),
]


def with_common_options(func):
    for option in reversed(common_options):
        func = option(func)
    return func


@click.group()
def schemahints():
    """Compile SCHEMAHINTS annotations to JSON Schema, bundle and sample them."""


@schemahints.command("compile")
@with_common_options
@click.option("--file", "-f", "files", multiple=True, type=click.Path(exists=True, dir_okay=False), help="Only compile these .puml files")
@click.option("--emit-enums/--no-emit-enums", default=None, help="Write enum artifacts for enumDefine hints")
@click.option("--strict", is_flag=True, default=False, help="Parse hints strictly; parser errors fail the class")
def compile_command(config_path, base_id, root, debug, files, emit_enums, strict):
    """Compile annotated PlantUML sources into schema and enum artifacts."""
    configure_logging(debug)
    config = load_config(
        config_path,
        base_id=base_id,
        root=root,
        emit_enums=emit_enums,
        parse_mode=ParseMode.STRICT.value if strict else None,
    )
    layout = StorageLayout(config.root)
    parser = HintParser(config.parse_mode)
    compiler = SchemaCompiler(config, layout)
    enums = EnumRegistry(enabled=config.emit_enums)
    writer = AtomicWriter()
    report = RunReport("compile")

    sources = sorted(Path(f) for f in files) if files else layout.source_files()
    written: set[Path] = set()
    for source in sources:
        try:
            namespace = layout.namespace_for_source(source)
            text = Path(source).read_text(encoding="utf-8")
        except (OSError, ValueError, StorageError) as e:
            # UnicodeDecodeError is a ValueError
            report.add(Outcome.FAIL, layout.relative(source), str(e))
            continue

        notes = extract_note_blocks(text)
        if not notes:
            report.add(Outcome.SKIP, layout.relative(source), "no SCHEMAHINTS notes")
            continue

        for note in notes:
            unit = f"{layout.relative(source)}#{note.owner}"
            try:
                block = parser.parse(note.body, note.owner, first_line=note.line)
            except HintParseError as e:
                report.add(Outcome.FAIL, unit, str(e))
                continue

            result = compiler.compile(block, namespace)
            diagnostics = block.diagnostics + result.diagnostics
            destination = layout.artifact_path(result.schema.canonical_id)
            if destination in written:
                report.add(Outcome.FAIL, unit, f"{layout.relative(destination)} already written in this run", diagnostics)
                continue

            try:
                writer.write_json(destination, result.schema.as_document(config.base_id, config.dialect))
            except StorageError as e:
                report.add(Outcome.FAIL, unit, str(e), diagnostics)
                continue
            written.add(destination)

            for emission in result.emissions:
                enums.request(emission)

            ok = not any(d.severity is Severity.ERROR for d in diagnostics)
            report.add(Outcome.WROTE if ok else Outcome.FAIL, layout.relative(destination), "" if ok else unit, diagnostics)

    for destination, error in enums.flush(writer, config.base_id).items():
        if error is None:
            report.add(Outcome.WROTE, layout.relative(destination))
        else:
            report.add(Outcome.FAIL, layout.relative(destination), error.reason)

    finish(report)


@schemahints.command("bundle")
@with_common_options
@click.option("--top", required=True, type=str, help="Title or file name of the top document")
@click.option("--out", "-o", "out", required=True, type=click.Path(dir_okay=False, resolve_path=True))
@click.option("--mode", "-m", default="bundle", type=click.Choice(["bundle", "deref"]))
def bundle_command(config_path, base_id, root, debug, top, out, mode):
    """Bundle or dereference the materialized corpus into one document."""
    configure_logging(debug)
    config = load_config(config_path, base_id=base_id, root=root)
    layout = StorageLayout(config.root)
    report = RunReport("bundle")

    registry = DocumentRegistry.load(layout, config.base_id)
    for path, error in registry.failures.items():
        report.add(Outcome.FAIL, layout.relative(path), error.reason)

    bundler = Bundler(registry, dialect=config.dialect)
    try:
        document = bundler.bundle(top) if mode == "bundle" else bundler.dereference(top)
        AtomicWriter().write_json(Path(out), document, sort_keys=True)
    except SchemaHintsError as e:
        report.add(Outcome.FAIL, out, str(e))
    else:
        report.add(Outcome.WROTE, out, f"{mode} of {len(registry)} documents")

    finish(report)


@schemahints.command("samples")
@with_common_options
@click.option("--max-depth", default=None, type=click.IntRange(min=0), help="Recursion ceiling for synthesis")
@click.option("--strict", is_flag=True, default=False, help="Count schemas with no sample as failures")
def samples_command(config_path, base_id, root, debug, max_depth, strict):
    """Synthesize a minimal example instance for every compiled schema."""
    configure_logging(debug)
    config = load_config(config_path, base_id=base_id, root=root, max_depth=max_depth)
    layout = StorageLayout(config.root)
    report = RunReport("samples")
    writer = AtomicWriter()

    registry = DocumentRegistry.load(layout, config.base_id)
    for path, error in registry.failures.items():
        report.add(Outcome.FAIL, layout.relative(path), error.reason)

    synthesizer = InstanceSynthesizer(registry, max_depth=config.max_depth)
    for handle in registry:
        if handle.canonical_id.kind is not ArtifactKind.SCHEMA:
            continue
        unit = layout.relative(handle.source) if handle.source else handle.identifier
        try:
            instance = synthesizer.synthesize(handle.body)
        except SchemaHintsError as e:
            report.add(Outcome.FAIL, unit, f"sample error: {e}")
            continue
        if instance is NO_SAMPLE:
            report.add(Outcome.FAIL if strict else Outcome.SKIP, unit, "no sample (pattern or depth limit)")
            continue

        destination = layout.sample_path(handle.canonical_id)
        try:
            writer.write_json(destination, instance)
        except StorageError as e:
            report.add(Outcome.FAIL, unit, f"write error: {e.reason}")
            continue
        report.add(Outcome.WROTE, layout.relative(destination))

    finish(report)


@schemahints.command("lint")
@click.option("--root", default="packages", type=click.Path(file_okay=False), help="Corpus root directory")
@click.option("--format", "output_format", default="text", type=click.Choice(["text", "json"]))
@click.option("--out", "-o", "out", default=None, type=click.Path(dir_okay=False), help="Write the report to a file")
@click.option("--strict", is_flag=True, default=False, help="Exit 1 when only warnings were found")
@click.option("--debug", is_flag=True, default=False, help="Verbose logging")
def lint_command(root, output_format, out, strict, debug):
    """Check SCHEMAHINTS annotations against the strict grammar."""
    configure_logging(debug)
    layout = StorageLayout(root)
    parser = HintParser(ParseMode.STRICT)
    report = RunReport("lint")

    for source in layout.source_files():
        unit = layout.relative(source)
        try:
            text = source.read_text(encoding="utf-8")
        except (OSError, ValueError) as e:
            report.add(Outcome.FAIL, unit, f"read error: {e}")
            continue
        notes = extract_note_blocks(text)
        if not notes:
            report.add(Outcome.SKIP, unit, "no SCHEMAHINTS notes")
            continue
        diagnostics = []
        for note in notes:
            try:
                block = parser.parse(note.body, note.owner, first_line=note.line)
            except HintParseError as e:
                logger.debug("Skipping note: %s", e)
                continue
            diagnostics.extend(block.diagnostics)
        has_errors = any(d.severity is Severity.ERROR for d in diagnostics)
        report.add(Outcome.FAIL if has_errors else Outcome.PASS, unit, f"{len(notes)} notes", diagnostics)

    if output_format == "json":
        rendered = dump_json(report.to_dict())
    else:
        rendered = report.render_text(expand_all=True) + "\n"

    if out is not None:
        AtomicWriter().write(Path(out), rendered, validate=output_format == "json")
        click.echo(f"Report written to {out}")
    else:
        click.echo(rendered, nl=False)

    if report.error_count or report.failed:
        sys.exit(2)
    if strict and report.warning_count:
        sys.exit(1)


if __name__ == "__main__":
    schemahints()
