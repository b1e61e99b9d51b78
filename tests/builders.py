"""
Builders for spec JSON used across the test suite.

Each helper returns the plain dict form so tests exercise the same
validation path as specs loaded from disk.
"""
from doccov.models import ExportSymbol, PackageSpec


def param(name, schema="string", required=True, description=None, rest=False):
    data = {"name": name, "schema": schema, "required": required, "rest": rest}
    if description is not None:
        data["description"] = description
    return data


def signature(*params, returns="void", returns_description=None, type_parameters=()):
    data = {"parameters": list(params), "typeParameters": list(type_parameters)}
    if returns is not None:
        data["returns"] = {"schema": returns, "description": returns_description}
    return data


def tag(name, text=""):
    return {"name": name, "text": text}


def function(name, *params, returns="void", description=None, **extra):
    data = {
        "id": name,
        "name": name,
        "kind": "function",
        "description": description,
        "signatures": [signature(*params, returns=returns)],
    }
    data.update(extra)
    return data


def method(name, *params, returns="void", visibility="public"):
    return {
        "name": name,
        "kind": "method",
        "visibility": visibility,
        "signatures": [signature(*params, returns=returns)],
    }


def prop(name, schema="string", visibility="public"):
    return {"name": name, "kind": "property", "schema": schema, "visibility": visibility}


def klass(name, *members, kind="class", description=None, **extra):
    data = {
        "id": name,
        "name": name,
        "kind": kind,
        "description": description,
        "members": list(members),
    }
    data.update(extra)
    return data


def make_spec(*exports, name="pkg", version="1.0.0", types=()):
    return PackageSpec.from_dict({
        "meta": {"name": name, "version": version},
        "exports": list(exports),
        "types": list(types),
    })


def make_export(data):
    return ExportSymbol.from_dict(data)
