"""Tests for CLI interface."""

import json
from pathlib import Path

import pytest

from autoimpl.cli import parse_args, run_cli


@pytest.fixture
def fixtures_path():
    return Path(__file__).parent / "fixtures" / "catalog"


class TestCLI:
    def given_catalog_args(self, fixtures_path, output, *extra):
        self.output = output
        self.args = [str(fixtures_path), "--output", str(output), *extra]

    def given_args(self, *args):
        self.args = list(args)

    def when_cli_is_run(self, capsys):
        self.exit_code = run_cli(self.args)
        self.captured = capsys.readouterr()

    def then_exit_code_is_zero(self):
        assert self.exit_code == 0

    def then_exit_code_is_nonzero(self):
        assert self.exit_code != 0

    def then_files_written(self, *names):
        assert sorted(p.name for p in self.output.iterdir()) == sorted(names)

    def test_writes_generated_files(self, fixtures_path, tmp_path, capsys):
        """Each implementation is written under its hint name."""
        self.given_catalog_args(fixtures_path, tmp_path / "out")
        self.when_cli_is_run(capsys)
        self.then_exit_code_is_zero()
        self.then_files_written(
            "Acme.Catalog.Product.g.cs", "Acme.Catalog.InventoryBag.g.cs"
        )
        product = (self.output / "Acme.Catalog.Product.g.cs").read_text()
        assert "public partial record Product : Acme.Catalog.IProduct" in product
        assert "Generated 2 implementations" in self.captured.err

    def test_reports_diagnostics_on_stderr(self, fixtures_path, tmp_path, capsys):
        self.given_catalog_args(fixtures_path, tmp_path)
        self.when_cli_is_run(capsys)
        self.then_exit_code_is_zero()
        assert "info GI0001: Interface 'IInventory' has indexer 'this[]'" in self.captured.err

    def test_emit_attribute(self, fixtures_path, tmp_path, capsys):
        self.given_catalog_args(fixtures_path, tmp_path, "--emit-attribute")
        self.when_cli_is_run(capsys)
        self.then_exit_code_is_zero()
        attribute = (tmp_path / "GenerateImplementationAttribute.g.cs").read_text()
        assert "public sealed class GenerateImplementationAttribute" in attribute

    def test_stdout_instead_of_files(self, fixtures_path, tmp_path, capsys):
        self.given_catalog_args(fixtures_path, tmp_path / "unused", "--stdout")
        self.when_cli_is_run(capsys)
        self.then_exit_code_is_zero()
        assert "// ----- Acme.Catalog.Product.g.cs" in self.captured.out
        assert "public partial class InventoryBag" in self.captured.out
        assert not (tmp_path / "unused").exists()

    def test_summary_json(self, fixtures_path, tmp_path, capsys):
        self.given_catalog_args(fixtures_path, tmp_path, "--summary")
        self.when_cli_is_run(capsys)
        self.then_exit_code_is_zero()
        summary = json.loads(self.captured.out)
        assert [o["type_name"] for o in summary["outputs"]] == ["Product", "InventoryBag"]

    def test_positional_style(self, fixtures_path, tmp_path, capsys):
        self.given_catalog_args(fixtures_path, tmp_path, "--style", "positional")
        self.when_cli_is_run(capsys)
        self.then_exit_code_is_zero()
        product = (tmp_path / "Acme.Catalog.Product.g.cs").read_text()
        assert "public partial record Product(string Name" in product

    def test_explicit_generate_command(self, fixtures_path, capsys):
        self.given_args("-v", "generate", str(fixtures_path), "--stdout")
        self.when_cli_is_run(capsys)
        self.then_exit_code_is_zero()
        assert "Reading declarations from" in self.captured.err

    def test_returns_nonzero_for_missing_path(self, tmp_path, capsys):
        self.given_args(str(tmp_path / "nope"))
        self.when_cli_is_run(capsys)
        self.then_exit_code_is_nonzero()
        assert "Error: No such file or directory" in self.captured.err

    def test_returns_nonzero_for_no_args(self, capsys):
        """With no arguments, usage is printed."""
        self.given_args()
        self.when_cli_is_run(capsys)
        self.then_exit_code_is_nonzero()
        assert "usage" in self.captured.err.lower()

    def test_returns_nonzero_for_unknown_style(self, fixtures_path, capsys):
        self.given_args(str(fixtures_path), "--style", "tuples")
        self.when_cli_is_run(capsys)
        self.then_exit_code_is_nonzero()

    def test_attribute_command(self, capsys):
        self.given_args("attribute")
        self.when_cli_is_run(capsys)
        self.then_exit_code_is_zero()
        assert "namespace AutoImplementation.CodeGeneration" in self.captured.out


class TestParseArgs:
    def test_bare_paths_imply_generate(self):
        parsed = parse_args(["-v", "src", "lib"])

        assert parsed.command == "generate"
        assert parsed.verbose
        assert [str(p) for p in parsed.paths] == ["src", "lib"]
        assert str(parsed.output) == "generated"
        assert parsed.style == "fields"
