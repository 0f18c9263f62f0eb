"""Root test configuration: shared markdown fixtures and session-level cleanup"""

import shutil
from pathlib import Path

import pytest


_PROJECT_ROOT = Path(__file__).parent.parent

_CLEANUP_DIRS = [".mdcontent"]


SAMPLE_MD = """\
# Heading 1

A paragraph with **bold** text and [a link](https://example.com).

## Heading 2

- item one
- item two

```python
print("hello")
```
"""

PROJECT_MD = """\
---
type: project
title: Test Project
description: A test project for validation
techStack: ["React", "TypeScript"]
image: "/test-image.jpg"
repoUrl: "https://github.com/test/project"
tags: [react, demo]
category: template
features:
  - label: "Feature 1"
    icon: "star"
actions:
  - label: "View"
    href: "https://example.com"
---

# Test Content

This is **bold** text with [a link](https://example.com).

## Subheading

Some more content here.
"""

QUOTE_MD = """\
---
type: quote
quote: This is a great quote
author: John Doe
tags: [people]
---

Said at a conference.
"""

POST_MD = "---\ntitle: Post\ntags: [react]\n---\n\n" + SAMPLE_MD


@pytest.fixture(scope="session", autouse=True)
def cleanup_artifacts():
    """Remove build directories created during the test session."""
    yield
    for name in _CLEANUP_DIRS:
        p = _PROJECT_ROOT / name
        if p.exists():
            shutil.rmtree(p)


@pytest.fixture(name="sample_md")
def sample_md_fixture():
    return SAMPLE_MD


@pytest.fixture(name="project_md")
def project_md_fixture():
    return PROJECT_MD


@pytest.fixture(name="content_root")
def content_root_fixture(tmp_path):
    """A small content tree: project.md, quotes/first.md, blog/2024/post.md."""
    root = tmp_path / "content"
    (root / "quotes").mkdir(parents=True)
    (root / "blog" / "2024").mkdir(parents=True)
    (root / "project.md").write_text(PROJECT_MD)
    (root / "quotes" / "first.md").write_text(QUOTE_MD)
    (root / "blog" / "2024" / "post.md").write_text(POST_MD)
    return root


@pytest.fixture(name="out_dir")
def out_dir_fixture(tmp_path):
    return tmp_path / "build"
