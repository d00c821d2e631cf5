"""Shared test fixtures for the memdiag_converter test suite.

WHY: Several test modules need the same report samples — a realistic
Valgrind memcheck error with two stacks, one with several <auxwhat>
explanations, and a Dr. Memory results.txt excerpt. Centralizing them
here avoids duplication and keeps the samples consistent.

HOW: Module-level strings hold the samples; small builder functions
assemble Valgrind documents with any number of <error> blocks; fixtures
write samples to tmp_path and provide an in-memory project index.

RULES:
- Samples follow the real tool output layout (Valgrind XML protocol 4,
  Dr. Memory 2.x results.txt)
- Project files live under "/work/project" in the in-memory index
"""

from typing import List, Optional, Sequence

import pytest

from memdiag_converter.core.project import ProjectFileIndex

PROJECT_ROOT = "/work/project"
PROJECT_FILES = ["src/main.c", "src/buffer.c", "include/buffer.h"]


# ---------------------------------------------------------------------------
# Valgrind XML builders
# ---------------------------------------------------------------------------

def valgrind_frame(
    file: Optional[str] = None,
    line: Optional[int] = None,
    directory: Optional[str] = None,
    fn: str = "main",
    obj: str = "/work/project/build/app",
    ip: str = "0x4005F4",
) -> str:
    parts = ["<frame>", "<ip>{}</ip>".format(ip), "<obj>{}</obj>".format(obj),
             "<fn>{}</fn>".format(fn)]
    if directory is not None:
        parts.append("<dir>{}</dir>".format(directory))
    if file is not None:
        parts.append("<file>{}</file>".format(file))
    if line is not None:
        parts.append("<line>{}</line>".format(line))
    parts.append("</frame>")
    return "".join(parts)


def valgrind_stack(*frames: str) -> str:
    return "<stack>{}</stack>".format("".join(frames))


def valgrind_error(
    kind: Optional[str] = "InvalidWrite",
    what: Optional[str] = "Invalid write of size 4",
    auxwhats: Sequence[str] = (),
    stacks: Sequence[str] = (),
    unique: str = "0x0",
) -> str:
    parts = ["<error>", "<unique>{}</unique>".format(unique), "<tid>1</tid>"]
    if kind is not None:
        parts.append("<kind>{}</kind>".format(kind))
    if what is not None:
        parts.append("<what>{}</what>".format(what))
    # Valgrind puts the first stack right after <what>, auxiliary
    # explanations and further stacks after it.
    remaining: List[str] = list(stacks)
    if remaining:
        parts.append(remaining.pop(0))
    for index, aux in enumerate(auxwhats):
        parts.append("<auxwhat>{}</auxwhat>".format(aux))
        if index < len(remaining):
            parts.append(remaining[index])
    parts.extend(remaining[len(auxwhats):])
    parts.append("</error>")
    return "".join(parts)


def valgrind_report(*errors: str) -> str:
    return (
        '<?xml version="1.0"?>\n'
        "<valgrindoutput>\n"
        "<protocolversion>4</protocolversion>\n"
        "<protocoltool>memcheck</protocoltool>\n"
        "<status><state>RUNNING</state><time>00:00:00:00.064</time></status>\n"
        + "\n".join(errors)
        + "\n<status><state>FINISHED</state><time>00:00:00:01.338</time></status>\n"
        "</valgrindoutput>\n"
    )


MULTIPLE_STACKS_REPORT = valgrind_report(valgrind_error(
    kind="InvalidWrite",
    what="Invalid write of size 4",
    auxwhats=["Address 0xd820468 is 0 bytes after a block of size 40 alloc'd"],
    stacks=[
        valgrind_stack(
            valgrind_frame("buffer.c", 21, "/work/project/src", fn="buffer_fill"),
            valgrind_frame("main.c", 9, "/work/project/src", fn="main"),
        ),
        valgrind_stack(
            valgrind_frame(None, None, fn="malloc",
                           obj="/usr/lib/valgrind/vgpreload_memcheck-amd64-linux.so"),
            valgrind_frame("buffer.c", 12, "/work/project/src", fn="buffer_new"),
            valgrind_frame("main.c", 7, "/work/project/src", fn="main"),
        ),
    ],
))

MULTIPLE_AUXWHAT_REPORT = valgrind_report(valgrind_error(
    kind="InvalidWrite",
    what="Invalid write of size 4",
    auxwhats=["Details0", "Details1"],
    stacks=[
        valgrind_stack(valgrind_frame("main.c", 9, "/work/project/src")),
    ],
))


# ---------------------------------------------------------------------------
# Dr. Memory text sample
# ---------------------------------------------------------------------------

DRMEMORY_REPORT = """\
Dr. Memory version 2.5.0 build 0 built on Oct 18 2021 03:01:22
Running "app.exe"

Error #1: UNINITIALIZED READ: reading register eax
#0 /work/project/src/main.c:12
#1 /work/project/src/buffer.c:40
Note: @0:00:00.218 in thread 5520

Error #2: UNADDRESSABLE ACCESS beyond heap bounds: writing 0x0000000002a0c8f8-0x0000000002a0c8fc 4 byte(s)
# 0 buffer_fill               [/work/project/src/buffer.c:21]
# 1 main                      [/work/project/src/main.c:9]

Error #3: LEAK 40 direct bytes 0x02a0c8d0-0x02a0c8f8 + 0 indirect bytes
#0 /usr/lib/libc.so:100
#1 /work/project/src/buffer.c:12

Error #4: POSSIBLE LEAK 16 direct bytes
#0 /usr/lib/libc.so:200

Error #5: HANDLE LEAK: KERNEL handle 0x00000184 and 0 similar handle(s) were opened but not closed

ERRORS FOUND:
      1 unique,     1 total unaddressable access(es)
"""


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def project_index():
    """In-memory project index rooted at PROJECT_ROOT."""
    return ProjectFileIndex(PROJECT_ROOT, files=PROJECT_FILES)


@pytest.fixture
def write_report(tmp_path):
    """Write report text to a file under tmp_path and return its path."""

    def _write(name: str, content, encoding: str = "utf-8"):
        path = tmp_path / name
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding=encoding)
        return path

    return _write
