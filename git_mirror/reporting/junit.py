"""
JUnit Report — One test case per mirrored repository.

Lets a CI system show individual repository failures the same way it
shows failing unit tests:

    <testsuites>
      <testsuite name="git-mirror" tests="3" failures="1" errors="0" skipped="0" time="4.200">
        <testcase classname="git-mirror" name="a/x" time="1.400"/>
        <testcase classname="git-mirror" name="a/y" time="1.300">
          <failure message="fatal: repository not found">fatal: repository not found</failure>
        </testcase>
        ...
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Optional, Sequence

from ..models.outcome import MirrorOutcome

SUITE_NAME = "git-mirror"

# Characters outside the XML 1.0 Char production (ANSI escapes from hooks, NULs, ...)
_INVALID_XML_CHARS = re.compile(
    "[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]"
)


def _seconds(value: float) -> str:
    return f"{value:.3f}"


def xml_safe(text: str) -> str:
    """Drop characters that cannot appear in an XML 1.0 document."""
    return _INVALID_XML_CHARS.sub("", text)


def _first_line(text: str) -> str:
    lines = text.strip().splitlines()
    return lines[0] if lines else text


def build_junit_xml(
    outcomes: Sequence[MirrorOutcome],
    failure: Optional[str] = None,
) -> str:
    """
    Render outcomes (already in report order) as a JUnit XML document.

    `failure` marks a run that failed before dispatch: the suite then has
    no test cases, errors="1" and the message in <system-err>.
    """
    failures = sum(1 for o in outcomes if o.failed)
    skipped = sum(1 for o in outcomes if o.skipped and not o.failed)
    total_time = sum(o.duration_seconds for o in outcomes)

    root = ET.Element("testsuites")
    suite = ET.SubElement(
        root,
        "testsuite",
        {
            "name": SUITE_NAME,
            "tests": str(len(outcomes)),
            "failures": str(failures),
            "errors": "1" if failure else "0",
            "skipped": str(skipped),
            "time": _seconds(total_time),
        },
    )

    for outcome in outcomes:
        case = ET.SubElement(
            suite,
            "testcase",
            {
                "classname": SUITE_NAME,
                "name": xml_safe(outcome.descriptor.full_path),
                "time": _seconds(outcome.duration_seconds),
            },
        )
        if outcome.failed:
            text = xml_safe(outcome.error or "mirror failed")
            element = ET.SubElement(
                case, "failure", {"message": _first_line(text), "type": outcome.action.value}
            )
            element.text = text
        elif outcome.skipped:
            ET.SubElement(case, "skipped", {"message": xml_safe(outcome.detail or "dry run")})

    if failure:
        note = ET.SubElement(suite, "system-err")
        note.text = xml_safe(f"Run failed before mirroring: {failure}")

    ET.indent(root)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(
        root, encoding="unicode"
    ) + "\n"
