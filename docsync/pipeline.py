"""Pure extraction, transformation and merge of one package's docs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from .config import DocSyncConfig
from .logging import get_logger
from .models import Diagnostic, HeadingShift, MergeResult, MergeStatus, PackageDescriptor
from .postproc.markers import DocumentMerger
from .postproc.transformer import MarkdownTransformer
from .rust.extractor import DocExtractor
from .rust.items import CrateIndex, SourceLoader

logger = get_logger("pipeline")


@dataclass(frozen=True)
class PipelineResult:
    merge: MergeResult
    markdown: str
    diagnostics: Tuple[Diagnostic, ...] = ()


def run_pipeline(
    package: PackageDescriptor,
    source_path: Path,
    source_text: str,
    readme_text: str,
    config: DocSyncConfig,
    *,
    load_source: Optional[SourceLoader] = None,
    extractor: DocExtractor | None = None,
    transformer: MarkdownTransformer | None = None,
    merger: DocumentMerger | None = None,
) -> PipelineResult:
    """Render the crate docs from ``source_text`` into ``readme_text``.

    Nothing here touches the filesystem; ``load_source`` is the only way other
    module files of the crate are read, and without it intra-doc links are
    resolved against an empty item index.

    Raises ParseFailure when the entry file is not valid Rust and
    UnresolvedLinkError under the ``fail`` link policy. Marker problems are
    reported through the returned ``MergeResult`` instead.
    """
    extractor = extractor or DocExtractor()
    transformer = transformer or MarkdownTransformer.from_config(config)
    merger = merger or DocumentMerger.from_config(config)

    scan = merger.scan(readme_text)
    if scan.error is not None:
        return PipelineResult(
            merge=MergeResult(status=MergeStatus.ERROR, error=scan.error), markdown=""
        )

    block = extractor.extract(source_text, source_path)
    if block.is_empty:
        logger.warning("No crate-level documentation found in %s", source_path)

    index: Optional[CrateIndex] = None
    if load_source is not None and not block.is_empty:

        def _load(path: Path) -> Optional[str]:
            return source_text if path == source_path else load_source(path)

        index = CrateIndex.build(source_path, _load)

    shift = config.headings.shift
    if shift is HeadingShift.AUTO:
        shift_headings = merger.has_title_outside(readme_text)
    else:
        shift_headings = shift is HeadingShift.ALWAYS
    logger.debug("Heading shift %s", "enabled" if shift_headings else "disabled")

    result = transformer.transform(
        block, package=package, index=index, shift_headings=shift_headings
    )
    merge = merger.merge(readme_text, result.markdown)
    logger.debug("Merge finished with status %s", merge.status.value)
    return PipelineResult(merge=merge, markdown=result.markdown, diagnostics=result.diagnostics)


__all__ = ["PipelineResult", "run_pipeline"]
