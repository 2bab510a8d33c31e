"""
Destination repair for converted PDF documents.

The HTML to PDF converter writes local destinations that address their target
page by page number ([3 /XYZ 0 792 0]) instead of by page object reference
([12 0 R /XYZ 0 792 0]). Page numbers are only valid for links into other
documents; viewers resolve them inconsistently for links inside the document,
and merging tools do not renumber them.

DestinationFixer finds these page-number destinations and points them at the
corresponding page objects. Three structures carry destinations:

    1. Link annotations of every page (/Dest, or /A of type /GoTo)
    2. Named destinations (flat /Dests dictionary and the /Names /Dests name tree)
    3. The outline (bookmark) tree

Destinations that already reference a page object are left unchanged, so the
repair is idempotent.

Usage:
    from docgen.contexts.rendering.destinations import fix_pdf_destinations

    repaired = fix_pdf_destinations(pdf_bytes)
"""

import io
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set, Tuple

import pikepdf

from docgen.contexts.rendering.logger import _log_debug, log_fix_result

# Page number of destinations that do not address their page by number
NOT_A_PAGE_NUMBER = -1


class DestinationFixError(ValueError):
    """Exception raised when a PDF cannot be parsed or its structure cannot be walked."""

    pass


@dataclass
class FixReport:
    """
    Destinations rewritten by one repair run.

    Attributes:
        annotations: Rewritten link annotation destinations
        named: Rewritten named destinations (flat dictionary and name tree)
        outline: Rewritten outline item destinations
        unresolved: Page-number destinations pointing outside the document (left as is)
    """

    annotations: int = 0
    named: int = 0
    outline: int = 0
    unresolved: int = 0

    @property
    def total(self) -> int:
        return self.annotations + self.named + self.outline


class PageDestination:
    """
    Explicit destination: an array whose first element identifies the target page.

    The first element is either a page object reference (direct destination) or
    an integer page number.
    """

    def __init__(self, array: pikepdf.Array):
        self.array = array

    @property
    def page_number(self) -> int:
        """Target page number, or NOT_A_PAGE_NUMBER for direct destinations."""
        target = self.array[0]
        if isinstance(target, int) and not isinstance(target, bool):
            return target
        return NOT_A_PAGE_NUMBER

    def set_page(self, page: pikepdf.Object) -> None:
        """Point the destination at a page object."""
        self.array[0] = page


def as_page_destination(value) -> Optional[PageDestination]:
    """
    Interpret a destination value.

    Arrays are explicit destinations; dictionaries carry their destination
    under /D. Names and strings refer to named destinations and are repaired
    where the name is defined, so they yield None here.
    """
    if isinstance(value, pikepdf.Dictionary):
        value = value.get("/D")
    if isinstance(value, pikepdf.Array) and len(value) > 0:
        return PageDestination(value)
    return None


def destination_or_action(item: pikepdf.Dictionary) -> Optional[PageDestination]:
    """
    Destination of a link annotation or outline item.

    /Dest takes precedence; the destination of a /GoTo action in /A is used
    only when /Dest is absent.
    """
    dest = item.get("/Dest")
    if dest is None:
        action = item.get("/A")
        if isinstance(action, pikepdf.Dictionary) and action.get("/S") == "/GoTo":
            dest = action.get("/D")
    return as_page_destination(dest)


def collect_page_references(pdf: pikepdf.Pdf) -> List[pikepdf.Object]:
    """
    Materialize the page tree into a list of page objects in document order.

    Index lookups on the page tree are expensive, destinations need one per
    rewrite.

    Raises:
        DestinationFixError: If the page tree is missing or contains a cycle
    """
    pages_root = pdf.Root.get("/Pages")
    if not isinstance(pages_root, pikepdf.Dictionary):
        raise DestinationFixError("Document catalog has no page tree")

    pages: List[pikepdf.Object] = []
    seen: Set[Tuple[int, int]] = set()

    def visit(node: pikepdf.Dictionary) -> None:
        if not isinstance(node, pikepdf.Dictionary):
            raise DestinationFixError(f"Page tree node is not a dictionary: {node!r}")
        if node.is_indirect:
            if node.objgen in seen:
                raise DestinationFixError(f"Page tree contains a cycle at object {node.objgen}")
            seen.add(node.objgen)

        kids = node.get("/Kids")
        if node.get("/Type") == "/Pages" or isinstance(kids, pikepdf.Array):
            for kid in kids or []:
                visit(kid)
        else:
            pages.append(node)

    visit(pages_root)
    return pages


class DestinationFixer:
    """
    Rewrites page-number destinations of a PDF to page object references, in place.

    The fixer owns the document while fix() runs; the document must not be
    shared with other threads.

    Args:
        pdf: Opened document (pikepdf.Pdf)
    """

    def __init__(self, pdf: pikepdf.Pdf):
        self.pdf = pdf
        self.pages: List[pikepdf.Object] = []
        self.report = FixReport()

    def fix(self) -> FixReport:
        """
        Run all repair passes.

        Returns:
            FixReport with the number of rewritten destinations per structure
        """
        self.pages = collect_page_references(self.pdf)
        self.report = FixReport()

        catalog = self.pdf.Root
        self._fix_annotations()
        self._fix_named_destinations(catalog)
        self._fix_outline(catalog)

        return self.report

    def _fix_destination(self, dest: Optional[PageDestination], counter: str) -> None:
        if dest is None:
            return

        page_number = dest.page_number
        if page_number == NOT_A_PAGE_NUMBER:
            return

        if not 0 <= page_number < len(self.pages):
            self.report.unresolved += 1
            _log_debug(f"Destination page {page_number} outside of {len(self.pages)} pages")
            return

        dest.set_page(self.pages[page_number])
        setattr(self.report, counter, getattr(self.report, counter) + 1)

    # Link annotations

    def _fix_annotations(self) -> None:
        for page in self.pages:
            for annotation in page.get("/Annots") or []:
                if (
                    isinstance(annotation, pikepdf.Dictionary)
                    and annotation.get("/Subtype") == "/Link"
                ):
                    self._fix_destination(destination_or_action(annotation), "annotations")

    # Named destinations

    def _fix_named_destinations(self, catalog: pikepdf.Dictionary) -> None:
        names = catalog.get("/Names")
        if isinstance(names, pikepdf.Dictionary):
            self._fix_name_tree(names.get("/Dests"), set())

        dests = catalog.get("/Dests")
        if isinstance(dests, pikepdf.Dictionary):
            for name in dests.keys():
                self._fix_destination(as_page_destination(dests.get(name)), "named")

    def _fix_name_tree(self, node, seen: Set[Tuple[int, int]]) -> None:
        """Fix the /Names entries of a name tree node, then recurse into /Kids."""
        if not isinstance(node, pikepdf.Dictionary):
            return

        if node.is_indirect:
            if node.objgen in seen:
                raise DestinationFixError(f"Name tree contains a cycle at object {node.objgen}")
            seen.add(node.objgen)

        names = node.get("/Names")
        if isinstance(names, pikepdf.Array):
            # Flat [key1 value1 key2 value2 ...] pairs
            for index in range(1, len(names), 2):
                self._fix_destination(as_page_destination(names[index]), "named")

        for kid in node.get("/Kids") or []:
            self._fix_name_tree(kid, seen)

    # Outline

    def _fix_outline(self, catalog: pikepdf.Dictionary) -> None:
        outline = catalog.get("/Outlines")
        if isinstance(outline, pikepdf.Dictionary):
            self._fix_outline_node(outline, set())

    def _fix_outline_node(self, node: pikepdf.Dictionary, seen: Set[Tuple[int, int]]) -> None:
        """Fix every child of an outline node, recursing into each child's children."""
        item = node.get("/First")
        while isinstance(item, pikepdf.Dictionary):
            if item.is_indirect:
                if item.objgen in seen:
                    raise DestinationFixError(
                        f"Outline tree contains a cycle at object {item.objgen}"
                    )
                seen.add(item.objgen)

            self._fix_destination(destination_or_action(item), "outline")
            self._fix_outline_node(item, seen)
            item = item.get("/Next")


def fix_pdf_destinations(pdf_bytes: bytes) -> bytes:
    """
    Repair page-number destinations of a PDF document.

    Args:
        pdf_bytes: PDF document

    Returns:
        Repaired PDF document (same PDF version)

    Raises:
        DestinationFixError: If the document cannot be parsed or walked
    """
    output, _ = fix_pdf_destinations_with_report(pdf_bytes)
    return output


def fix_pdf_destinations_with_report(pdf_bytes: bytes) -> Tuple[bytes, FixReport]:
    """Repair a PDF document and return it together with the FixReport."""
    try:
        with pikepdf.open(io.BytesIO(pdf_bytes)) as pdf:
            report = DestinationFixer(pdf).fix()
            output = save_pdf(pdf)
    except pikepdf.PdfError as e:
        raise DestinationFixError(f"Could not repair PDF destinations: {e}") from e

    log_fix_result(report)
    return output, report


def save_pdf(pdf: pikepdf.Pdf) -> bytes:
    """Serialize a document; identical input yields identical bytes."""
    buffer = io.BytesIO()
    pdf.save(buffer, deterministic_id=True)
    return buffer.getvalue()


def fix_pdf_file(path: Path) -> FixReport:
    """
    Repair a PDF file in place.

    Args:
        path: PDF file to rewrite

    Returns:
        FixReport of the repair
    """
    path = Path(path)
    output, report = fix_pdf_destinations_with_report(path.read_bytes())
    path.write_bytes(output)
    return report
