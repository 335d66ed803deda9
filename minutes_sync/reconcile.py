from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .compare import Difference, compare_summaries
from .github import FetchError
from .models import MeetingRecord, record_date, record_workgroup, unwrap_summary
from .ordering import apply_workgroup_order, remove_empty_values
from .parser import ParseError, parse_document


logger = logging.getLogger(__name__)


ENTIRE_RECORD = "entire record"


class ReconcileError(RuntimeError):
    pass


@dataclass(frozen=True)
class SourceDocument:
    path: str
    text: str


@dataclass(frozen=True)
class ComparisonResult:
    workgroup: str
    source_path: str
    candidate_record: Dict[str, Any]
    ordered_candidate: Dict[str, Any]
    canonical_record: Optional[Dict[str, Any]]
    ordered_canonical: Optional[Dict[str, Any]]
    differences: List[Difference] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.canonical_record is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workgroup": self.workgroup,
            "filePath": self.source_path,
            "candidateData": self.candidate_record,
            "orderedCandidateData": self.ordered_candidate,
            "canonicalData": self.canonical_record,
            "orderedCanonicalData": self.ordered_canonical,
            "differences": [d.to_dict() for d in self.differences],
        }


def find_matching_record(
    candidate: Dict[str, Any], canonical_records: Sequence[Dict[str, Any]]
) -> Optional[Dict[str, Any]]:
    """Canonical record (unwrapped) for the candidate's workgroup and date.

    An exact workgroup match is preferred over a case-insensitive one. A
    candidate without a date never matches.
    """

    date = record_date(candidate)
    workgroup = record_workgroup(candidate) or ""
    if not date:
        logger.debug("candidate %r has no date; not matching", workgroup)
        return None

    dated = [r for r in canonical_records if isinstance(r, dict) and record_date(r) == date]
    for record in dated:
        if record_workgroup(record) == workgroup:
            return unwrap_summary(record)
    key = workgroup.lower()
    for record in dated:
        if (record_workgroup(record) or "").lower() == key:
            return unwrap_summary(record)
    return None


def reconcile_record(
    candidate: Dict[str, Any],
    source_path: str,
    canonical_records: Sequence[Dict[str, Any]],
) -> ComparisonResult:
    ordered_candidate = remove_empty_values(apply_workgroup_order(candidate))
    match = find_matching_record(candidate, canonical_records)
    workgroup = record_workgroup(candidate) or ""

    if match is None:
        return ComparisonResult(
            workgroup=workgroup,
            source_path=source_path,
            candidate_record=candidate,
            ordered_candidate=ordered_candidate,
            canonical_record=None,
            ordered_canonical=None,
            differences=[Difference(ENTIRE_RECORD, ordered_candidate, None)],
        )

    ordered_canonical = remove_empty_values(apply_workgroup_order(match))
    return ComparisonResult(
        workgroup=workgroup,
        source_path=source_path,
        candidate_record=candidate,
        ordered_candidate=ordered_candidate,
        canonical_record=match,
        ordered_canonical=ordered_canonical,
        differences=compare_summaries(ordered_candidate, ordered_canonical),
    )


def _parse(document: SourceDocument, canonical_records: Sequence[Dict[str, Any]]) -> List[MeetingRecord]:
    result = parse_document(document.text, canonical_records)
    if isinstance(result, ParseError):
        raise ReconcileError(f"Error parsing {document.path}: {result.error}")
    return result.records


def reconcile_document(
    document: SourceDocument, canonical_records: Sequence[Dict[str, Any]]
) -> List[ComparisonResult]:
    """Compare every workgroup record in one document. Raises ReconcileError
    when the document cannot be parsed."""

    return [
        reconcile_record(record.to_dict(), document.path, canonical_records)
        for record in _parse(document, canonical_records)
    ]


def reconcile(
    documents: Iterable[SourceDocument], canonical_records: Sequence[Dict[str, Any]]
) -> List[ComparisonResult]:
    """Batch comparison; unparseable documents are logged and skipped."""

    results: List[ComparisonResult] = []
    for document in documents:
        try:
            results.extend(reconcile_document(document, canonical_records))
        except ReconcileError as e:
            logger.warning("skipping %s: %s", document.path, e)
    return results


class DocumentSource:
    def fetch_raw_document(self, path: str) -> str:
        raise NotImplementedError

    def list_markdown_files(self, path: str) -> List[str]:
        raise NotImplementedError

    def list_directories(self, path: str) -> List[str]:
        raise NotImplementedError


class RecordSource:
    def fetch_canonical_records(self) -> List[Dict[str, Any]]:
        raise NotImplementedError


class LocalDocumentSource(DocumentSource):
    """Markdown files on disk, relative to `root` unless absolute."""

    def __init__(self, root: Optional[Path] = None):
        self._root = root or Path(".")

    def _resolve(self, path: str) -> Path:
        p = Path(path).expanduser()
        return p if p.is_absolute() else self._root / p

    def fetch_raw_document(self, path: str) -> str:
        p = self._resolve(path)
        try:
            return p.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise FetchError(code="not_found", message=f"Cannot read {p}: {e}") from e

    def list_markdown_files(self, path: str) -> List[str]:
        p = self._resolve(path)
        if not p.is_dir():
            raise FetchError(code="not_found", message=f"Not a directory: {p}")
        return [str(Path(path) / f.name) for f in sorted(p.glob("*.md"))]

    def list_directories(self, path: str) -> List[str]:
        p = self._resolve(path)
        if not p.is_dir():
            raise FetchError(code="not_found", message=f"Not a directory: {p}")
        return sorted(d.name for d in p.iterdir() if d.is_dir())


class StaticRecordSource(RecordSource):
    def __init__(self, records: Sequence[Dict[str, Any]]):
        self._records = list(records)

    def fetch_canonical_records(self) -> List[Dict[str, Any]]:
        return list(self._records)


class Reconciler:
    """Fetches documents and canonical records through injected sources.

    Canonical records are fetched once per call and shared by every
    document in that call.
    """

    def __init__(self, documents: DocumentSource, records: RecordSource):
        self._documents = documents
        self._records = records

    def compare_path(self, path: str) -> List[ComparisonResult]:
        """Single document. Fetch and parse failures propagate."""

        canonical = self._records.fetch_canonical_records()
        text = self._documents.fetch_raw_document(path)
        return reconcile_document(SourceDocument(path, text), canonical)

    def compare_paths(self, paths: Iterable[str]) -> List[ComparisonResult]:
        canonical = self._records.fetch_canonical_records()
        logger.info("loaded %d canonical record(s)", len(canonical))

        results: List[ComparisonResult] = []
        for path in paths:
            try:
                text = self._documents.fetch_raw_document(path)
            except FetchError as e:
                logger.warning("skipping %s: %s", path, e)
                continue
            results.extend(reconcile([SourceDocument(path, text)], canonical))
        return results

    def compare_directory(self, path: str) -> List[ComparisonResult]:
        files = self._documents.list_markdown_files(path)
        logger.info("comparing %d file(s) under %s", len(files), path)
        return self.compare_paths(files)
