"""Schema validation: structural invariants checked before emission.

Three independent checks run over a ParsedSchema and all of their failures
are collected, so one compilation reports every defect at once:

- key-mechanism exclusivity: an item key closure and field key markers
  cannot coexist on one type (enum variant fields included)
- key-type capability: a key field rendered without a transform must offer
  the ``display`` capability, and may not be optional
- attribute well-formedness: separator, prefix and version non-empty,
  transform names registered, field types resolvable, names unique and
  usable as Python identifiers, and the definition shape matching its kind

Non-fatal advisories are returned separately and never block emission.
"""

from __future__ import annotations

import keyword
import logging
from collections import Counter

from netabase_schema.errors import ConfigurationError, Diagnostic, KeyResolutionError
from netabase_schema.runtime.schema import RESERVED_NAMES
from netabase_schema.schemas.attributes import FieldDescriptor, ParsedSchema
from netabase_schema.transforms import TransformRegistry
from netabase_schema.types import Capability, TypeExpressionError, TypeRegistry

logger = logging.getLogger(__name__)


class SchemaValidator:
    """Validate a parsed schema against the compiler's invariants.

    Example:
        >>> validator = SchemaValidator(TypeRegistry(), TransformRegistry())
        >>> errors, warnings = validator.validate(parsed)
        >>> errors
        []
    """

    def __init__(self, types: TypeRegistry, transforms: TransformRegistry) -> None:
        self.types = types
        self.transforms = transforms

    def validate(self, parsed: ParsedSchema) -> tuple[list[Diagnostic], list[str]]:
        """Run every check and aggregate the results.

        Args:
            parsed: Output of the attribute parser.

        Returns:
            Tuple of (errors, warnings).
        """
        errors: list[Diagnostic] = []
        warnings: list[str] = []

        errors.extend(self.check_exclusivity(parsed))
        capability_errors, capability_warnings = self.check_key_capabilities(parsed)
        errors.extend(capability_errors)
        warnings.extend(capability_warnings)
        errors.extend(self.check_well_formed(parsed))

        for warning in warnings:
            logger.warning("%s", warning)
        for error in errors:
            logger.debug("Validation failed: %s", error.user_message)
        return errors, warnings

    def check_exclusivity(self, parsed: ParsedSchema) -> list[Diagnostic]:
        closure = parsed.container.item_key_closure
        if closure is None:
            return []

        keyed = [f"{owner}.{f.name}" for owner, f in parsed.all_fields() if f.is_key]
        if not keyed:
            return []
        return [
            KeyResolutionError(
                parsed.name,
                rule=(
                    f"item key closure '{closure}' and field keys "
                    f"({', '.join(keyed)}) are mutually exclusive"
                ),
                remedy="keep either the item key closure or the field key markers",
            )
        ]

    def check_key_capabilities(self, parsed: ParsedSchema) -> tuple[list[Diagnostic], list[str]]:
        errors: list[Diagnostic] = []
        warnings: list[str] = []

        for owner, field in parsed.all_fields():
            if not field.is_key:
                continue
            construct = f"{owner}.{field.name}"

            if field.optional:
                errors.append(
                    KeyResolutionError(
                        construct,
                        rule="optional key field lacks the 'display' capability",
                        remedy="make the key field required or use an item key closure",
                    )
                )
                continue

            try:
                resolved = self.types.resolve(field.type, parsed.generic_names)
            except TypeExpressionError:
                continue  # reported by check_well_formed

            if field.key_transform is None and Capability.DISPLAY not in resolved.capabilities:
                errors.append(
                    KeyResolutionError(
                        construct,
                        rule=f"key field of type '{field.type}' lacks the 'display' capability",
                        remedy=(
                            "use a displayable type (str, int, uuid, ...) "
                            "or add a key_transform that renders it"
                        ),
                    )
                )
            elif resolved.ref.name == "float" and field.key_transform is None:
                warnings.append(
                    f"{construct}: float key fields render with repr(); "
                    "consider 'decimal' or 'str' for stable keys"
                )

            if field.index:
                warnings.append(f"{construct}: key field is also marked 'index'; the index is redundant")
        return errors, warnings

    def check_well_formed(self, parsed: ParsedSchema) -> list[Diagnostic]:
        errors: list[Diagnostic] = []
        container = parsed.container

        if container.separator == "":
            errors.append(
                ConfigurationError(
                    "separator",
                    rule="separator must not be empty",
                    remedy="set a non-empty separator such as '::'",
                )
            )
        if container.prefix == "":
            errors.append(
                ConfigurationError(
                    "prefix",
                    rule="prefix must not be empty",
                    remedy="remove the prefix or give it a value",
                )
            )
        if container.version == "":
            errors.append(
                ConfigurationError(
                    "version",
                    rule="version must not be empty",
                    remedy="remove the version or give it a value",
                )
            )
        if container.item_key_closure is not None and container.item_key_closure not in self.transforms:
            errors.append(self._unknown_transform("item_key_closure", container.item_key_closure))

        errors.extend(self._check_shape(parsed))
        errors.extend(self._check_generics(parsed))

        for owner, field in parsed.all_fields():
            errors.extend(self._check_field(parsed, owner, field))
        return errors

    def _check_shape(self, parsed: ParsedSchema) -> list[Diagnostic]:
        errors: list[Diagnostic] = []
        if parsed.is_enum:
            if parsed.fields:
                errors.append(
                    ConfigurationError(
                        parsed.name,
                        rule="enum definitions carry fields on their variants, not on the enum",
                        remedy="move the fields into a variant",
                    )
                )
            if not parsed.variants:
                errors.append(
                    ConfigurationError(
                        parsed.name,
                        rule="enum definition declares no variants",
                        remedy="declare at least one variant",
                    )
                )
            errors.extend(
                self._duplicates(parsed.name, [v.name for v in parsed.variants], "variant")
            )
            for variant in parsed.variants:
                if keyword.iskeyword(variant.name):
                    errors.append(
                        self._keyword(f"{parsed.name}.{variant.name}", variant.name, "variant")
                    )
                if variant.name in RESERVED_NAMES:
                    errors.append(
                        self._reserved(f"{parsed.name}.{variant.name}", variant.name, "variant")
                    )
                errors.extend(
                    self._duplicates(
                        f"{parsed.name}.{variant.name}",
                        [f.name for f in variant.fields],
                        "field",
                    )
                )
        else:
            if parsed.variants:
                errors.append(
                    ConfigurationError(
                        parsed.name,
                        rule="struct definitions cannot declare variants",
                        remedy="set kind: enum or remove the variants",
                    )
                )
            errors.extend(self._duplicates(parsed.name, [f.name for f in parsed.fields], "field"))
        return errors

    def _check_generics(self, parsed: ParsedSchema) -> list[Diagnostic]:
        errors: list[Diagnostic] = []
        names = [g.name for g in parsed.generics]
        errors.extend(self._duplicates(parsed.name, names, "generic parameter"))
        known = {c.value for c in Capability}
        for param in parsed.generics:
            if keyword.iskeyword(param.name):
                errors.append(
                    self._keyword(f"{parsed.name}.{param.name}", param.name, "generic parameter")
                )
            if param.name in self.types:
                errors.append(
                    ConfigurationError(
                        f"{parsed.name}.{param.name}",
                        rule=f"generic parameter '{param.name}' shadows a registered type",
                        remedy="rename the generic parameter",
                    )
                )
            for bound in param.bounds:
                if bound not in known:
                    errors.append(
                        ConfigurationError(
                            f"{parsed.name}.{param.name}",
                            rule=f"unknown bound '{bound}' on generic parameter '{param.name}'",
                            remedy=f"use one of: {', '.join(sorted(known))}",
                        )
                    )
        return errors

    def _check_field(
        self, parsed: ParsedSchema, owner: str, field: FieldDescriptor
    ) -> list[Diagnostic]:
        errors: list[Diagnostic] = []
        construct = f"{owner}.{field.name}"

        if keyword.iskeyword(field.name):
            errors.append(self._keyword(construct, field.name, "field"))
        if field.name in RESERVED_NAMES:
            errors.append(self._reserved(construct, field.name, "field"))

        try:
            self.types.resolve(field.type, parsed.generic_names)
        except TypeExpressionError as e:
            errors.append(
                ConfigurationError(
                    construct,
                    rule=f"cannot resolve type '{field.type}': {e}",
                    remedy=f"use a registered type ({', '.join(self.types.names())}) "
                    "or register it with TypeRegistry.register",
                )
            )

        if field.key_transform is not None:
            if not field.is_key:
                errors.append(
                    ConfigurationError(
                        f"{construct}.key_transform",
                        rule="key_transform is set on a field that is not a key",
                        remedy="mark the field with 'key' or remove key_transform",
                    )
                )
            if field.key_transform not in self.transforms:
                errors.append(self._unknown_transform(f"{construct}.key_transform", field.key_transform))
        return errors

    def _unknown_transform(self, construct: str, name: str) -> ConfigurationError:
        return ConfigurationError(
            construct,
            rule=f"unknown transform '{name}'",
            remedy=(
                f"register '{name}' with TransformRegistry.register "
                f"(available: {', '.join(self.transforms)})"
            ),
        )

    @staticmethod
    def _duplicates(owner: str, names: list[str], what: str) -> list[Diagnostic]:
        return [
            ConfigurationError(
                f"{owner}.{name}",
                rule=f"duplicate {what} '{name}'",
                remedy=f"give every {what} a unique name",
            )
            for name, count in Counter(names).items()
            if count > 1
        ]

    @staticmethod
    def _keyword(construct: str, name: str, what: str) -> ConfigurationError:
        return ConfigurationError(
            construct,
            rule=f"{what} name '{name}' is a Python keyword",
            remedy=f"rename the {what}, e.g. '{name}_'",
        )

    @staticmethod
    def _reserved(construct: str, name: str, what: str) -> ConfigurationError:
        return ConfigurationError(
            construct,
            rule=f"{what} name '{name}' collides with a generated method",
            remedy=f"rename the {what} (reserved: {', '.join(sorted(RESERVED_NAMES))})",
        )
