"""Turns extracted crate documentation into self-contained markdown."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Mapping, Optional, Tuple

from ..logging import get_logger
from ..models import Diagnostic, DocBlock, FenceAction, LinkPolicy, LinkReference, PackageDescriptor
from ..rust.items import CrateIndex
from .fences import CodeFenceRewriter
from .headings import shift_headings as shift_heading_levels
from .intralinks import IntraLinkRewriter, LinkResolver
from .sections import SectionStripper

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from docsync.config import DocSyncConfig

logger = get_logger("postproc.transformer")


@dataclass(frozen=True)
class TransformResult:
    markdown: str
    diagnostics: Tuple[Diagnostic, ...] = ()
    unresolved: Tuple[LinkReference, ...] = ()


@dataclass
class MarkdownTransformer:
    """Applies the rewrite passes in a fixed order.

    Fences are normalised first so that the later passes can rely on code
    blocks being recognised; links are resolved before headings move, and
    title/badge stripping runs last so it sees the final heading text.
    """

    language: str = "rust"
    fence_overrides: Mapping[str, FenceAction] = field(default_factory=dict)
    heading_offset: int = 1
    strip_title: bool = False
    strip_badges: bool = False
    link_policy: LinkPolicy = LinkPolicy.DROP_LABEL
    strip_links: bool = False
    docs_rs_base_url: str = "https://docs.rs"
    docs_rs_version: Optional[str] = None
    std_base_url: str = "https://doc.rust-lang.org/stable"

    @classmethod
    def from_config(cls, config: "DocSyncConfig") -> "MarkdownTransformer":
        return cls(
            language=config.code_blocks.language,
            fence_overrides=dict(config.code_blocks.attributes),
            heading_offset=config.headings.offset,
            strip_title=config.headings.strip_title,
            strip_badges=config.headings.strip_badges,
            link_policy=config.intralinks.on_unresolved,
            strip_links=config.intralinks.strip_links,
            docs_rs_base_url=config.intralinks.docs_rs_base_url,
            docs_rs_version=config.intralinks.docs_rs_version,
            std_base_url=config.intralinks.std_base_url,
        )

    def transform(
        self,
        block: DocBlock,
        *,
        package: PackageDescriptor | None = None,
        index: CrateIndex | None = None,
        shift_headings: bool = False,
    ) -> TransformResult:
        lines: List[str] = []
        origins: List[Optional[int]] = []
        for doc_line in block.lines:
            # Block comments and doc literals may carry several lines in one entry.
            for part in doc_line.text.split("\n"):
                lines.append(part)
                origins.append(doc_line.line)

        diagnostics: List[Diagnostic] = []
        unresolved: List[LinkReference] = []

        lines, origins, fence_diagnostics = CodeFenceRewriter(
            self.language, self.fence_overrides
        ).rewrite(lines, origins)
        diagnostics.extend(fence_diagnostics)

        if package is not None:
            resolver = LinkResolver(
                package,
                index,
                docs_rs_base_url=self.docs_rs_base_url,
                docs_rs_version=self.docs_rs_version,
                std_base_url=self.std_base_url,
            )
            links = IntraLinkRewriter(
                resolver, policy=self.link_policy, strip_links=self.strip_links
            ).rewrite(lines, origins)
            lines, origins = links.lines, links.origins
            diagnostics.extend(links.diagnostics)
            unresolved.extend(links.unresolved)
        else:
            logger.debug("No package metadata; intra-doc links left as written")

        if shift_headings and self.heading_offset:
            lines, origins = shift_heading_levels(lines, origins, self.heading_offset)

        lines, origins = SectionStripper(self.strip_title, self.strip_badges).strip(lines, origins)

        while lines and not lines[0].strip():
            lines.pop(0)
        while lines and not lines[-1].strip():
            lines.pop()

        logger.debug(
            "Rendered %d markdown lines with %d diagnostics", len(lines), len(diagnostics)
        )
        return TransformResult(
            markdown="\n".join(line.rstrip("\r") for line in lines),
            diagnostics=tuple(diagnostics),
            unresolved=tuple(unresolved),
        )


__all__ = ["MarkdownTransformer", "TransformResult"]
