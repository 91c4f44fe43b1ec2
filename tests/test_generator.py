"""Tests for the batch generator."""

import json
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from autoimpl.discovery.compilation import Compilation
from autoimpl.engine.options import RenderStyle
from autoimpl.engine.synthesizer import synthesize
from autoimpl.generator import GenerationError, generate, generate_from_paths
from autoimpl.models import SourceLocation

GENERATED_AT = datetime(2025, 12, 4, 10, 0, tzinfo=UTC)


@pytest.fixture
def fixtures_path():
    return Path(__file__).parent / "fixtures" / "catalog"


class TestGenerate:
    def given_catalog(self, fixtures_path):
        self.fixtures_path = fixtures_path
        self.compilation = Compilation.from_paths([fixtures_path])

    def given_sources(self, sources):
        self.compilation = Compilation.from_sources(sources)

    def when_generated(self, style=RenderStyle.FIELDS):
        self.result = generate(self.compilation, style=style, generated_at=GENERATED_AT)

    def output_named(self, hint_name):
        return next(o for o in self.result.outputs if o.hint_name == hint_name)

    def then_outputs_are(self, *hint_names):
        assert [o.hint_name for o in self.result.outputs] == list(hint_names)

    def test_generates_every_annotated_interface(self, fixtures_path):
        """One output per interface carrying the marker attribute."""
        self.given_catalog(fixtures_path)
        self.when_generated()
        self.then_outputs_are(
            "Acme.Catalog.Product.g.cs", "Acme.Catalog.InventoryBag.g.cs"
        )
        assert self.result.errors == []
        assert self.result.generated_at == "2025-12-04T10:00:00+00:00"

    def test_product_implements_whole_hierarchy(self, fixtures_path):
        """Inherited members are implemented alongside declared ones."""
        self.given_catalog(fixtures_path)
        self.when_generated()

        source = self.output_named("Acme.Catalog.Product.g.cs").source

        assert source.startswith(
            "using Acme.Catalog.Pricing;\n"
            "using AutoImplementation.CodeGeneration;\n"
            "using System.Collections.Generic;\n"
            "\n"
            "namespace Acme.Catalog\n"
        )
        assert "public partial record Product : Acme.Catalog.IProduct" in source
        for line in [
            "public required string Name { get; init; }",
            "public decimal? Discount { get; init; }",
            "public required System.Collections.Generic.List<Acme.Catalog.Pricing.Tag> Tags { get; init; }",
            "public required Acme.Catalog.Pricing.Price Price { get; init; }",
            "public required int Id { get; init; }",
            "public required DateTime CreatedAt { get; init; }",
            "public string? CreatedBy { get; init; }",
        ]:
            assert f"        {line}\n" in source
        assert source.count("{ get; init; }") == 7

    def test_inventory_uses_class_and_stubs(self, fixtures_path):
        """Attribute arguments choose the name and a class; non-data members throw."""
        self.given_catalog(fixtures_path)
        self.when_generated()

        source = self.output_named("Acme.Catalog.InventoryBag.g.cs").source

        assert (
            "    public partial class InventoryBag : Acme.Catalog.IInventory\n"
            "    {\n"
            "        public required int Count { get; init; }\n"
            "\n"
            "        public int this[string sku]\n"
            "        {\n"
            "            get => throw new System.NotImplementedException();\n"
            "            set => throw new System.NotImplementedException();\n"
            "        }\n"
            "\n"
            "        public bool TryReserve(string sku, out int remaining, int quantity = 1)\n"
            "        {\n"
            "            throw new System.NotImplementedException();\n"
            "        }\n"
            "\n"
            "        public event System.EventHandler Changed;\n"
            "    }\n"
            "}\n"
        ) in source

    def test_indexer_diagnostic_collected(self, fixtures_path):
        self.given_catalog(fixtures_path)
        self.when_generated()

        (diagnostic,) = self.result.diagnostics
        assert diagnostic.id == "GI0001"
        assert diagnostic.location == SourceLocation(
            str(fixtures_path / "Product.cs"), 20
        )

    def test_other_attributes_are_not_candidates_for_output(self):
        """Interfaces with unrelated attributes are skipped without error."""
        self.given_sources({"A.cs": "[Obsolete] interface IOld { int Id { get; } }"})
        self.when_generated()
        self.then_outputs_are()
        assert self.result.errors == []

    def test_positional_style(self, fixtures_path):
        self.given_catalog(fixtures_path)
        self.when_generated(style=RenderStyle.POSITIONAL)

        source = self.output_named("Acme.Catalog.Product.g.cs").source

        assert "public partial record Product(string Name, decimal? Discount," in source

    def test_failure_recorded_and_run_continues(self, fixtures_path):
        """An error on one interface does not stop the others."""
        self.given_catalog(fixtures_path)

        def flaky(decl, **kwargs):
            if decl.name == "IProduct":
                raise RuntimeError("boom")
            return synthesize(decl, **kwargs)

        with patch("autoimpl.generator.synthesize", side_effect=flaky):
            self.when_generated()

        self.then_outputs_are("Acme.Catalog.InventoryBag.g.cs")
        assert self.result.errors == [
            GenerationError(interface="Acme.Catalog.IProduct", error="boom")
        ]


class TestGenerationResult:
    def test_summary_json(self, fixtures_path):
        """The summary lists outputs and diagnostics without sources."""
        result = generate_from_paths([fixtures_path], generated_at=GENERATED_AT)

        parsed = json.loads(result.to_json())

        assert parsed["generated_at"] == "2025-12-04T10:00:00+00:00"
        assert parsed["outputs"][0] == {
            "hint_name": "Acme.Catalog.Product.g.cs",
            "type_name": "Product",
            "namespace": "Acme.Catalog",
        }
        assert parsed["diagnostics"][0]["id"] == "GI0001"
        assert parsed["diagnostics"][0]["severity"] == "info"
        assert parsed["diagnostics"][0]["location"].endswith("Product.cs:20")
        assert parsed["errors"] == []


@pytest.fixture
def orders_path():
    return Path(__file__).parent / "fixtures" / "orders"


class TestOrderStore:
    def given_orders(self, orders_path):
        self.result = generate(Compilation.from_paths([orders_path]), generated_at=GENERATED_AT)
        (self.output,) = self.result.outputs
        self.source = self.output.source

    def then_member_is(self, line):
        assert f"        {line}\n" in self.source

    def test_usings_at_file_and_namespace_level(self, orders_path):
        """Relative directives from a namespace block stay inside the namespace."""
        self.given_orders(orders_path)

        assert self.output.hint_name == "Acme.Sales.OrderStore.g.cs"
        assert self.source.startswith(
            "using Acme.Sales;\n"
            "using AutoImplementation.CodeGeneration;\n"
            "using Col = System.Collections.Generic;\n"
            "using System.Collections.Generic;\n"
            "\n"
            "namespace Acme.Sales\n"
            "{\n"
            "    using Data;\n"
            "\n"
            "    // <auto-generated/>\n"
        )

    def test_nested_and_alias_qualified_types(self, orders_path):
        """Neither a containing type nor an alias is ever imported as a namespace."""
        self.given_orders(orders_path)

        self.then_member_is("public required Acme.Sales.Order.Status State { get; set; }")
        self.then_member_is(
            "public required System.Collections.Generic.List<Acme.Sales.Order.Line> Lines "
            "{ get; init; }"
        )
        assert "using Order;" not in self.source
        assert "using Col;" not in self.source

    def test_generic_base_members_bound_to_type_arguments(self, orders_path):
        self.given_orders(orders_path)

        self.then_member_is(
            "public required System.Collections.Generic.IReadOnlyList<Acme.Sales.Order> All "
            "{ get; init; }"
        )
        self.then_member_is("public Acme.Sales.Order Get(int id)")
        self.then_member_is("public (Acme.Sales.Order Item, bool Found) TryFind(string key)")
        self.then_member_is("public char Separator(char fallback = '\\\\')")
        assert self.result.errors == []
