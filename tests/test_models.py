"""Tests for data models."""

from autoimpl.engine.diagnostics import INDEXER_INFO, Diagnostic
from autoimpl.models import (
    AttributeUsage,
    BaseInterface,
    InterfaceDecl,
    SourceLocation,
    TypeRef,
)


class TestTypeRef:
    def test_nullable_wrapper(self):
        wrapper = TypeRef("Nullable", "System", type_arguments=[TypeRef("Int32", "System")])

        assert wrapper.is_nullable_value_wrapper
        assert wrapper.is_nullable
        assert not TypeRef("Nullable", "Acme", type_arguments=[TypeRef("X")]).is_nullable

    def test_walk_visits_nested_types(self):
        type_ref = TypeRef(
            "Dictionary",
            "System.Collections.Generic",
            type_arguments=[
                TypeRef("String", "System"),
                TypeRef("Line[]", element_type=TypeRef("Line", "Acme")),
            ],
        )

        assert [t.name for t in type_ref.walk()] == ["Dictionary", "String", "Line[]", "Line"]

    def test_full_name(self):
        assert TypeRef("Product", "Acme").full_name == "Acme.Product"
        assert TypeRef("T", is_type_parameter=True).full_name == "T"

    def test_full_name_of_nested_type(self):
        status = TypeRef("Status", "Acme.Sales", containing_type="Order")

        assert status.full_name == "Acme.Sales.Order.Status"
        assert TypeRef("Kind", containing_type="Outer.Inner").full_name == "Outer.Inner.Kind"

    def test_is_tuple_needs_a_name_slot_per_element(self):
        elements = [TypeRef("Int32", "System"), TypeRef("String", "System")]
        named = TypeRef(
            "ValueTuple", "System", type_arguments=elements, tuple_names=[None, "Name"]
        )

        assert named.is_tuple
        assert not TypeRef("ValueTuple", "System", type_arguments=elements).is_tuple


class TestInterfaceDecl:
    def test_full_name_includes_arity(self):
        assert InterfaceDecl("IProduct", "Acme").full_name == "Acme.IProduct"
        assert (
            InterfaceDecl("IRepository", "Acme", type_parameters=["T", "TKey"]).full_name
            == "Acme.IRepository`2"
        )
        assert InterfaceDecl("IThing").full_name == "IThing"

    def test_as_type_ref_closes_over_own_parameters(self):
        type_ref = InterfaceDecl("IBox", "Acme", type_parameters=["T"]).as_type_ref()

        assert type_ref.full_name == "Acme.IBox"
        assert type_ref.type_arguments[0].is_type_parameter

    def test_compared_by_identity(self):
        assert InterfaceDecl("IA") != InterfaceDecl("IA")

    def test_repr_tolerates_cycles(self):
        a = InterfaceDecl("IA")
        a.bases.append(a)

        assert "IA" in repr(a)


class TestAttributeUsage:
    def test_simple_name(self):
        assert AttributeUsage("Acme.Marker").simple_name == "Marker"
        assert AttributeUsage("global::Marker").simple_name == "Marker"
        assert AttributeUsage("Marker").simple_name == "Marker"


class TestDiagnostic:
    def test_formats_with_location(self):
        diagnostic = Diagnostic.create(
            INDEXER_INFO, SourceLocation("IBag.cs", 4), "IBag", "this[]"
        )

        assert str(diagnostic) == (
            "IBag.cs:4: info GI0001: Interface 'IBag' has indexer 'this[]'. "
            "It will be generated with NotImplementedException."
        )

    def test_formats_without_location(self):
        diagnostic = Diagnostic.create(INDEXER_INFO, None, "IBag", "this[]")

        assert str(diagnostic).startswith("info GI0001: ")


class TestBaseInterface:
    def test_substitution_pairs_parameters_with_arguments(self):
        repository = InterfaceDecl("IRepository", "Acme", type_parameters=["T", "TKey"])
        order = TypeRef("Order", "Acme")
        key = TypeRef("Int32", "System")

        base = BaseInterface(repository, [order, key])

        assert base.substitution() == {"T": order, "TKey": key}

    def test_distinct_arguments_are_distinct_bases(self):
        box = InterfaceDecl("IBox", "Acme", type_parameters=["T"])

        assert BaseInterface(box, [TypeRef("Int32", "System")]) != BaseInterface(
            box, [TypeRef("String", "System")]
        )
        assert BaseInterface(box, [TypeRef("Int32", "System")]) == BaseInterface(
            box, [TypeRef("Int32", "System")]
        )
