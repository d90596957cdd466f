"""
Test configuration and fixtures for the flowlens test suite.
"""
import sys
from pathlib import Path

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from flowlens.config import Settings
from flowlens.messages import get_translator
from flowlens.types import FunctionCatalog


@pytest.fixture
def snapshot_workflow() -> str:
    """The small workflow used for the Steps view snapshot."""
    return (
        'function workflow() { const x = 1; if (x > 0) { console.log("positive"); } '
        'else { console.log("non-positive"); } return x; }'
    )


@pytest.fixture
def browser_workflow() -> str:
    """A typed, multi-line browser automation workflow."""
    return """
import type { Page } from "playwright";

interface Result {
  title: string;
  count?: number;
}

async function workflow(): Promise<Result> {
  // open the landing page
  const page: Page = await browser.newPage();
  await page.goto("https://example.com");
  await page.click("#login")
  const title = await page.title();
  let count = 0
  for (const item of items) {
    count += 1;
  }
  try {
    await page.fill("#q", "flowlens");
  } catch (err) {
    console.log(err);
  }
  return { title, count } as Result;
}
"""


@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of the environment."""
    return Settings()


@pytest.fixture
def t_en():
    return get_translator("en")


@pytest.fixture
def t_ja():
    return get_translator("ja")


@pytest.fixture
def catalog() -> FunctionCatalog:
    """A plugin catalog with one registered function."""
    return FunctionCatalog.model_validate({
        "packages": [
            {
                "packageName": "mail-tools",
                "functions": [
                    {"functionId": "sendMail", "functionName": "Send e-mail", "description": "Sends a message"},
                ],
            }
        ]
    })


@pytest.fixture
def workflow_file(tmp_path, snapshot_workflow) -> Path:
    path = tmp_path / "workflow.ts"
    path.write_text(snapshot_workflow, encoding="utf-8")
    return path
