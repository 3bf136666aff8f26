"""
Module: scanner.pipeline

Purpose:
    Recover marked answers from a photograph or scan of one page.
    Decode → QR → Registration → Bubbles → Result

Key Functions:
    - recover_answers(): Main entry point
    - read_qr(): Decode only the page QR (routing unknown scans)

Only undecodable input raises. A degraded sheet (no QR, wrong QR, missing
corner marks or fiducials, faint bubbles) still yields a RecoveryResult
with warnings and None answers.

Dependencies:
    - scanner.decoding, scanner.qr, scanner.registration, scanner.alignment,
      scanner.bubbles

Used By:
    - cli: ``omr-toolkit scan`` and ``omr-toolkit read-qr``
"""

from __future__ import annotations

import logging
import time
from typing import Iterable, List, Optional, Union

from omr_toolkit.common.identifiers import identifier_matches
from omr_toolkit.core.errors import CoordinateMapError
from omr_toolkit.core.models import PageMap, RecoveryResult

from .alignment import choose_mapping
from .bubbles import read_question
from .config import RecoveryConfig
from .decoding import ImageInput, decode_image
from .qr import decode_qr
from .registration import resolve_mapping

logger = logging.getLogger(__name__)

NO_QR_WARNING = "no QR detected"
QR_MISMATCH_WARNING = "QR does not match expected exam"


def _expected_list(expected: Union[str, Iterable[str], None]) -> List[str]:
    if expected is None:
        return []
    if isinstance(expected, str):
        return [expected] if expected.strip() else []
    return [str(e) for e in expected if str(e).strip()]


def read_qr(image: ImageInput, config: Optional[RecoveryConfig] = None) -> Optional[str]:
    """
    Decode the page QR of a scan.

    Raises:
        ImageDecodeError: If the image cannot be decoded

    Example:
        >>> read_qr(scan_bytes)
        'EXAM:A1B2:P1'
    """
    config = config or RecoveryConfig()
    decoded = decode_image(image, config)
    return decode_qr(decoded.gray, config)


def recover_answers(
    image: ImageInput,
    page_map: PageMap,
    expected_identifier: Union[str, Iterable[str], None] = None,
    margin_mm: float = 10.0,
    config: Optional[RecoveryConfig] = None,
) -> RecoveryResult:
    """
    Recover the marked answers of one scanned page.

    Pipeline:
    1. Decode, orient, normalise and bound the image size
    2. Decode the QR and check it against the expected identifier(s)
    3. Resolve the document -> pixel mapping from the corner marks, then
       keep it only if it fits the printed bubbles at least as well as
       the scale mapping
    4. Read every question of the page map
    5. Return answers in question-number order with all warnings

    Args:
        image: Encoded bytes, base64 text, data URL or PIL image
        page_map: Coordinate map entry of the expected page
        expected_identifier: QR payload (or payloads) this page should carry
        margin_mm: Margin used at generation time
        config: Optional tuning override

    Returns:
        RecoveryResult

    Raises:
        CoordinateMapError: If ``page_map`` is not a PageMap
        ImageDecodeError: If the image cannot be decoded
    """
    if not isinstance(page_map, PageMap):
        raise CoordinateMapError(f"a PageMap is required, got {type(page_map).__name__}")
    config = config or RecoveryConfig()
    warnings: List[str] = []
    start_time = time.perf_counter()

    # 1. Decode
    decoded = decode_image(image, config)
    logger.info(
        f"Recovering page {page_map.page_number} from {decoded.width}x{decoded.height} image"
    )

    # 2. QR
    qr_text = decode_qr(decoded.gray, config)
    expected = _expected_list(expected_identifier)
    if qr_text is None:
        logger.warning("No QR detected")
        warnings.append(NO_QR_WARNING)
    elif expected and not identifier_matches(qr_text, expected):
        logger.warning(f"QR '{qr_text}' does not match {expected}")
        warnings.append(QR_MISMATCH_WARNING)

    # 3. Registration
    mapping = resolve_mapping(decoded.gray, page_map, margin_mm, config, warnings)
    mapping = choose_mapping(decoded.gray, page_map, mapping, config, warnings)
    logger.debug(f"Using {mapping.kind} mapping")

    # 4. Bubbles
    readings = [
        read_question(decoded.gray, marks, mapping, config, warnings)
        for marks in sorted(page_map.questions, key=lambda q: q.number)
    ]
    unrefined = sum(1 for r in readings if r.refined is False)
    if unrefined:
        warnings.append(
            f"fiducials not found for {unrefined} question(s); using page registration"
        )

    answers = tuple(r.answer for r in readings)
    elapsed = time.perf_counter() - start_time
    logger.info(
        f"Recovered {sum(1 for a in answers if a.opinion)}/{len(answers)} answers "
        f"in {elapsed:.2f}s with {len(warnings)} warnings"
    )
    return RecoveryResult(answers=answers, warnings=tuple(warnings), qr_text=qr_text)
