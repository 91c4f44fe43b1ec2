"""Source of the marker attribute that consumers put on their interfaces."""

ATTRIBUTE_HINT_NAME = "GenerateImplementationAttribute.g.cs"

ATTRIBUTE_NAMESPACE = "AutoImplementation.CodeGeneration"


def marker_attribute_source() -> str:
    """Return the C# declaration of ``GenerateImplementationAttribute``."""
    return f"""using System;

namespace {ATTRIBUTE_NAMESPACE}
{{
    /// <summary>
    /// Annotate interfaces to generate a concrete implementation.
    /// </summary>
    [AttributeUsage(AttributeTargets.Interface)]
    public sealed class GenerateImplementationAttribute : Attribute
    {{
        /// <summary>
        /// Name of the generated type. When null, the interface name without its 'I' prefix.
        /// </summary>
        public string? ClassName {{ get; set; }}

        /// <summary>
        /// When true (the default) a record is generated; otherwise a class.
        /// </summary>
        public bool UseRecord {{ get; set; }} = true;

        public GenerateImplementationAttribute(string? className = null, bool useRecord = true)
        {{
            ClassName = className;
            UseRecord = useRecord;
        }}
    }}
}}
"""
