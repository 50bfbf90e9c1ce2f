"""Integration tests for SEO MCP.

Covers package imports, the shipped settings file, CLI smoke tests
(help output plus a few commands with the toolbox mocked), and syntax
validation of every Python file in the project.
"""

import ast
import importlib
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from seo_mcp import cli

# ---------------------------------------------------------------------------
# Project root (conftest.py already puts it on sys.path)
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent


# ===========================================================================
# 1. Module imports
# ===========================================================================
class TestModuleImports:
    """All packages should expose their public entry points."""

    @pytest.mark.parametrize("module_path,names", [
        ("seo_mcp.modules.onpage_seo", [
            "PageAnalyzer", "analyze_headings", "analyze_images", "analyze_links",
            "build_heading_tree", "calculate_seo_score", "extract_schema",
            "generate_meta_suggestions", "generate_schema", "identify_issues", "validate_schema",
        ]),
        ("seo_mcp.modules.technical_audit", [
            "analyze_robots_txt", "analyze_sitemap", "generate_robots_txt",
        ]),
        ("seo_mcp.integrations", ["DataForSEO", "GoogleSearchConsole", "PageSpeedInsights"]),
        ("seo_mcp.models", ["HeadingLevel", "HeadingAnalysis", "PageAnalysis", "SeoIssue"]),
        ("seo_mcp.server", ["SeoToolbox", "create_server", "serve"]),
    ])
    def test_module_importable(self, module_path, names):
        mod = importlib.import_module(module_path)
        for name in names:
            assert hasattr(mod, name), name + " not found in " + module_path

    def test_version(self):
        import seo_mcp
        assert seo_mcp.__version__ == "1.0.0"


# ===========================================================================
# 2. Settings YAML
# ===========================================================================
class TestSettingsYaml:
    """Shipped configuration file should be loadable."""

    def test_settings_file_exists(self):
        assert (PROJECT_ROOT / "config" / "settings.yaml").exists(), "config/settings.yaml not found"

    def test_settings_has_required_sections(self):
        import yaml
        with open(PROJECT_ROOT / "config" / "settings.yaml") as fh:
            config = yaml.safe_load(fh)
        for section in ("server", "logging", "http", "cache", "api", "rules", "weights"):
            assert section in config, "Missing config section: " + section

    def test_shipped_weights_match_defaults(self, clean_env):
        from seo_mcp.app import load_settings
        from seo_mcp.constants import DEFAULT_RULES, DEFAULT_WEIGHTS

        settings = load_settings(str(PROJECT_ROOT / "config" / "settings.yaml"), env_path="missing.env")
        assert settings.weights == DEFAULT_WEIGHTS
        assert settings.rules == DEFAULT_RULES


# ===========================================================================
# 3. CLI commands (smoke test via CliRunner)
# ===========================================================================
class TestCLICommands:
    """CLI help should work for all registered commands."""

    def test_main_help(self):
        result = CliRunner().invoke(cli.app, ["--help"])
        assert result.exit_code == 0
        assert "SEO MCP" in result.output

    @pytest.mark.parametrize("command", [
        "serve",
        "analyze",
        "headings",
        "robots",
        "sitemap",
        "schema",
        "status",
    ])
    def test_command_help(self, command):
        result = CliRunner().invoke(cli.app, [command, "--help"])
        assert result.exit_code == 0, (
            "Command '" + command + "' --help failed with exit code "
            + str(result.exit_code) + ": " + result.output
        )


class TestCLIRuns:
    """Commands run end to end against a mocked toolbox."""

    @pytest.fixture(autouse=True)
    def _isolated_config(self, clean_env, tmp_path, monkeypatch):
        config = tmp_path / "settings.yaml"
        config.write_text("logging:\n  level: WARNING\n")
        monkeypatch.setattr(cli, "CONFIG_PATH", str(config))
        monkeypatch.setattr(cli, "ENV_PATH", str(tmp_path / ".env"))

    def _toolbox(self, **methods):
        toolbox = MagicMock()
        for name, result in methods.items():
            setattr(toolbox, name, AsyncMock(return_value=result))
        return toolbox

    def test_status(self):
        result = CliRunner().invoke(cli.app, ["status"])
        assert result.exit_code == 0
        assert "Pagespeed" in result.output
        assert "GSC_CREDENTIALS_PATH" in result.output

    def test_headings(self):
        payload = {
            "headingTree": [{"tag": "h1", "text": "Guide", "order": 1, "children": [
                {"tag": "h2", "text": "Fit", "order": 2, "children": []},
            ]}],
            "flatList": [],
            "counts": {"h1": 1, "h2": 1},
            "keywordPresence": {"inH1": False, "inH2": [], "count": 0},
            "issues": [{"type": "keyword_missing_h1", "severity": "high",
                        "detail": 'Target keyword "shoes" not found in H1'}],
        }
        toolbox = self._toolbox(analyze_headings=payload)
        with patch("seo_mcp.server.SeoToolbox", return_value=toolbox):
            result = CliRunner().invoke(cli.app, ["headings", "https://example.com", "-k", "shoes"])

        assert result.exit_code == 0, result.output
        toolbox.analyze_headings.assert_awaited_once_with("https://example.com", "shoes")
        assert "Guide" in result.output
        assert "Keyword in H1: no" in result.output

    def test_analyze_json(self):
        payload = {"url": "https://example.com/", "score": {"overall": 77, "breakdown": {}}}
        toolbox = self._toolbox(analyze_page=payload)
        with patch("seo_mcp.server.SeoToolbox", return_value=toolbox):
            result = CliRunner().invoke(cli.app, ["analyze", "https://example.com/", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["score"]["overall"] == 77

    def test_error_exits_nonzero(self):
        from seo_mcp.utils.errors import SitemapError

        toolbox = MagicMock()
        toolbox.analyze_sitemap = AsyncMock(side_effect=SitemapError("Failed to fetch sitemap: HTTP 404"))
        with patch("seo_mcp.server.SeoToolbox", return_value=toolbox):
            result = CliRunner().invoke(cli.app, ["sitemap", "example.com"])

        assert result.exit_code == 1
        assert "HTTP 404" in result.output

    def test_schema(self):
        payload = {
            "url": "https://example.com/",
            "schemas": [{"format": "json-ld", "type": "Article", "raw": {},
                         "validation": {"valid": True, "errors": [], "warnings": ["w"],
                                        "googleEligible": True, "richResultType": "Article"}}],
            "summary": {"totalSchemas": 1, "types": ["Article"], "googleEligibleCount": 1,
                        "errorCount": 0, "warningCount": 1},
        }
        toolbox = self._toolbox(extract_schema=payload)
        with patch("seo_mcp.server.SeoToolbox", return_value=toolbox):
            result = CliRunner().invoke(cli.app, ["schema", "https://example.com/"])

        assert result.exit_code == 0, result.output
        assert "1 item(s), 1 eligible for rich results" in result.output
        assert "Article" in result.output

    def test_serve_rejects_unknown_transport(self):
        result = CliRunner().invoke(cli.app, ["serve", "--transport", "websocket"])
        assert result.exit_code == 1
        assert "Unknown transport" in result.output


# ===========================================================================
# 4. All Python files syntax validation
# ===========================================================================
class TestAllPythonFilesSyntax:
    """Every .py file in seo_mcp/ and tests/ should pass ast.parse."""

    def _collect_python_files(self):
        files = []
        for directory in ("seo_mcp", "tests"):
            base = PROJECT_ROOT / directory
            if base.exists():
                for py_file in base.rglob("*.py"):
                    if "__pycache__" in py_file.parts:
                        continue
                    files.append(py_file)
        return sorted(files)

    def test_all_python_files_parse(self):
        py_files = self._collect_python_files()
        assert len(py_files) > 0, "No Python files found"
        errors = []
        for py_file in py_files:
            try:
                ast.parse(py_file.read_text(encoding="utf-8"))
            except SyntaxError as exc:
                errors.append(str(py_file.relative_to(PROJECT_ROOT)) + ": " + str(exc))
        if errors:
            pytest.fail("Python syntax errors found:\n" + "\n".join(errors[:20]))


# ===========================================================================
# 5. Requirements / key packages importable
# ===========================================================================
class TestRequirementsInstallable:
    """Key packages from requirements.txt should be importable."""

    @pytest.mark.parametrize("package", [
        "aiohttp",
        "bs4",   # beautifulsoup4
        "httpx",
        "mcp",
        "googleapiclient",  # google-api-python-client
        "google.oauth2",    # google-auth
        "typer",
        "rich",
        "yaml",  # PyYAML
        "dotenv",  # python-dotenv
    ])
    def test_package_importable(self, package):
        importlib.import_module(package)
