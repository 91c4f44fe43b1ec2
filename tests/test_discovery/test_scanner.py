"""Tests for scanning C# source files."""

from autoimpl.discovery.scanner import (
    find_closing,
    scan_source,
    split_top_level,
    strip_comments,
)


class TestStripComments:
    def test_comments_blanked_and_lines_kept(self):
        text = "int a; // note\n/* block\ncomment */ int b;\n"

        stripped = strip_comments(text)

        assert "note" not in stripped
        assert "block" not in stripped
        assert stripped.count("\n") == text.count("\n")
        assert "int b;" in stripped

    def test_comment_markers_inside_strings_kept(self):
        text = 'string url = "http://example.com"; // trailing'

        stripped = strip_comments(text)

        assert '"http://example.com"' in stripped
        assert "trailing" not in stripped


class TestSplitTopLevel:
    def test_nested_brackets_not_split(self):
        assert split_top_level("IRepository<Product, int>, IDisposable") == [
            "IRepository<Product, int>",
            "IDisposable",
        ]

    def test_literals_not_split(self):
        assert split_top_level('"a, b", 1') == ['"a, b"', "1"]

    def test_custom_separator(self):
        assert split_top_level("int count = 1", "=") == ["int count", "1"]


class TestFindClosing:
    def test_matches_nested_braces(self):
        text = "{ a { b } '}' \"}\" }"

        assert find_closing(text, 0) == len(text) - 1

    def test_unterminated_returns_minus_one(self):
        assert find_closing("{ a { b }", 0) == -1


class TestNamespaces:
    def test_file_scoped_namespace(self):
        scanned = scan_source("namespace Acme.Catalog;\n\npublic interface IProduct { }\n")

        assert scanned.interfaces[0].namespace == "Acme.Catalog"

    def test_nested_block_namespaces(self):
        source = """
namespace Acme
{
    namespace Sales
    {
        interface IOrder { }
    }

    interface ICustomer { }
}

interface IGlobal { }
"""
        scanned = scan_source(source)

        namespaces = {i.name: i.namespace for i in scanned.interfaces}
        assert namespaces == {
            "IOrder": "Acme.Sales",
            "ICustomer": "Acme",
            "IGlobal": None,
        }

    def test_usings_are_scoped(self):
        """Usings inside a namespace block apply only within it."""
        source = """
using System;

namespace Acme
{
    using System.Linq;

    interface IInside { }
}

namespace Other
{
    interface IOutside { }
}
"""
        scanned = scan_source(source)

        by_name = {i.name: i for i in scanned.interfaces}
        assert by_name["IInside"].usings == ["using System;"]
        assert by_name["IInside"].namespace_usings == ["using System.Linq;"]
        assert by_name["IOutside"].usings == ["using System;"]
        assert by_name["IOutside"].namespace_usings == []
        assert scanned.usings == ["using System;"]

    def test_usings_after_file_scoped_namespace(self):
        source = "using System;\nnamespace Acme;\nusing Pricing;\ninterface IShop { }\n"

        (shop,) = scan_source(source).interfaces

        assert shop.usings == ["using System;"]
        assert shop.namespace_usings == ["using Pricing;"]

    def test_using_directive_forms(self):
        source = (
            "global using Acme.Models;\n"
            "using static System.Math;\n"
            "using   Json  =  System.Text.Json;\n"
        )

        assert scan_source(source).usings == [
            "global using Acme.Models;",
            "using static System.Math;",
            "using Json = System.Text.Json;",
        ]


class TestDeclaredTypes:
    def test_records_kinds_and_arity(self):
        source = """
namespace Acme
{
    public class Repository<T, TKey> { public void Save() { } }
    public readonly struct Money { }
    public enum Color { Red, Green }
    public record Point(int X, int Y);
    public record struct Range(int Start, int End);
    public delegate void Notify<T>(T value);
}
"""
        scanned = scan_source(source)

        declared = {(t.name, t.arity): t for t in scanned.declared_types}
        assert set(declared) == {
            ("Repository", 2),
            ("Money", 0),
            ("Color", 0),
            ("Point", 0),
            ("Range", 0),
            ("Notify", 1),
        }
        assert declared[("Money", 0)].is_value_type
        assert declared[("Color", 0)].is_value_type
        assert declared[("Range", 0)].is_value_type
        assert not declared[("Point", 0)].is_value_type
        assert not declared[("Repository", 2)].is_value_type
        assert all(t.namespace == "Acme" for t in scanned.declared_types)

    def test_class_bodies_are_skipped(self):
        """Members of classes never surface as interfaces to implement."""
        source = """
public class Service
{
    private const string Marker = "interface IFake {";
    public interface INested { }
}
public interface IReal { }
"""
        scanned = scan_source(source)

        assert [i.name for i in scanned.interfaces] == ["IReal"]
        assert [(t.name, t.containing) for t in scanned.declared_types] == [
            ("Service", None),
            ("INested", "Service"),
            ("IReal", None),
        ]

    def test_nested_types_record_containing_type(self):
        source = """
namespace Acme
{
    public class Order
    {
        public enum Status { Open, Closed }
        public Status Current { get; set; }
        public T Find<T>(int id) where T : class { return default; }
        public void Save() { var local = new { Kind = 1 }; }
        public record Line(int Quantity)
        {
            public struct Amount { }
        }
    }
}
"""
        scanned = scan_source(source)

        declared = {t.name: t for t in scanned.declared_types}
        assert set(declared) == {"Order", "Status", "Line", "Amount"}
        assert declared["Status"].containing == "Order"
        assert declared["Status"].namespace == "Acme"
        assert declared["Status"].is_value_type
        assert declared["Amount"].containing == "Order.Line"
        assert declared["Order"].containing is None

    def test_commented_out_interfaces_ignored(self):
        source = "// public interface IGone { }\n/* interface IAlsoGone { } */\n"

        assert scan_source(source).interfaces == []


class TestInterfaceSyntax:
    def given_interface(self):
        self.source = """using System;

namespace Acme
{
    [Serializable]
    [GenerateImplementation("Repo")]
    public partial interface IRepository<out T, TKey> : IReadable<T>, IDisposable
        where T : class
        where TKey : notnull
    {
        T Find(TKey key);
    }
}
"""

    def when_scanned(self):
        self.syntax = scan_source(self.source, "Repo.cs").interfaces[0]

    def test_header_parts(self):
        self.given_interface()
        self.when_scanned()

        assert self.syntax.name == "IRepository"
        assert self.syntax.type_parameters == ["T", "TKey"]
        assert self.syntax.base_list == ["IReadable<T>", "IDisposable"]
        assert self.syntax.constraint_clauses == [
            "where T : class",
            "where TKey : notnull",
        ]
        assert self.syntax.is_partial
        assert self.syntax.modifiers == ["public", "partial"]

    def test_attributes_kept_as_written(self):
        self.given_interface()
        self.when_scanned()

        assert self.syntax.attributes == [
            "[Serializable]",
            '[GenerateImplementation("Repo")]',
        ]

    def test_body_and_locations(self):
        self.given_interface()
        self.when_scanned()

        assert "T Find(TKey key);" in self.syntax.body
        assert self.syntax.path == "Repo.cs"
        assert self.syntax.line == 7
        assert self.syntax.body_line == 10
