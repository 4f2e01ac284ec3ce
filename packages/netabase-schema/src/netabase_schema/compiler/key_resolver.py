"""Key strategy resolution and key assembly.

The resolver picks exactly one key-generation strategy per definition,
first match wins:

1. item key closure            -> ITEM_CLOSURE
2. one key field + transform   -> FIELD_CLOSURE
3. one key field               -> SINGLE_FIELD
4. two or more key fields      -> COMPOSITE_FIELDS (declaration order)
5. enum without item closure   -> PER_VARIANT, each variant by rules 2-4

There is no implicit default key. Conflicting mechanisms are reported by
the validator; the resolver only reports what it cannot resolve.

The resolved KeySpecification is then turned into a KeyAssemblyPlan, the
runtime callable that renders an instance into its key string.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from netabase_schema.compiler.models import KeySpecification, KeyStrategy
from netabase_schema.errors import Diagnostic, KeyResolutionError
from netabase_schema.schemas.attributes import FieldDescriptor, ParsedSchema
from netabase_schema.transforms import TransformRegistry
from netabase_schema.types import TypeRegistry

logger = logging.getLogger(__name__)


def _ensure_str(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"key transform '{name}' returned {type(value).__name__}, expected str")
    return value


@dataclass(frozen=True)
class KeyPart:
    """One contributing field of a key: how to read and render it."""

    name: str
    render: Callable[[Any], str]
    transform: str | None = None
    transform_fn: Callable[[Any], Any] | None = None

    def __call__(self, instance: Any) -> str:
        value = getattr(instance, self.name)
        if self.transform_fn is not None:
            return _ensure_str(self.transform or self.name, self.transform_fn(value))
        return self.render(value)


@dataclass(frozen=True)
class KeyAssemblyPlan:
    """Runtime computation of a key string from an instance.

    Attributes:
        specification: The resolved specification this plan executes.
        parts: Contributing fields in declaration order.
        closure: Item key closure (ITEM_CLOSURE only).
        variants: Per-variant plans (PER_VARIANT only).

    Example:
        >>> plan = resolver.assemble(spec, parsed)
        >>> plan.compute(User(id=42, name="ada"))
        'user::42'
    """

    specification: KeySpecification
    parts: tuple[KeyPart, ...] = ()
    closure: Callable[[Any], Any] | None = None
    variants: dict[str, KeyAssemblyPlan] = field(default_factory=dict)

    def compute(self, instance: Any) -> str:
        """Render ``instance`` into its key string.

        Raises:
            TypeError: If a transform or closure returns a non-string.
            KeyError: If the instance is not a variant this plan knows, or
                the item key closure is missing from the plan.
        """
        spec = self.specification
        if spec.strategy is KeyStrategy.PER_VARIANT:
            variant = getattr(instance, "__variant_name__", None)
            return self.variants[variant].compute(instance)

        if spec.strategy is KeyStrategy.ITEM_CLOSURE:
            if self.closure is None:
                raise KeyError(f"transform '{spec.item_closure}' is not bound to this plan")
            body = _ensure_str(spec.item_closure or "item_key_closure", self.closure(instance))
        else:
            body = spec.separator.join(part(instance) for part in self.parts)

        if spec.prefix is not None:
            return f"{spec.prefix}{spec.separator}{body}"
        return body


class KeyResolver:
    """Resolve key strategies and build their assembly plans.

    Example:
        >>> resolver = KeyResolver(TypeRegistry(), TransformRegistry())
        >>> spec, errors = resolver.resolve(parsed)
        >>> spec.strategy
        <KeyStrategy.SINGLE_FIELD: 'single_field'>
    """

    def __init__(self, types: TypeRegistry, transforms: TransformRegistry) -> None:
        self.types = types
        self.transforms = transforms

    def resolve(self, parsed: ParsedSchema) -> tuple[KeySpecification | None, list[Diagnostic]]:
        """Pick the key strategy of a parsed schema.

        Args:
            parsed: Output of the attribute parser.

        Returns:
            Tuple of (specification or None, diagnostics). The specification
            is None whenever a diagnostic was produced.
        """
        container = parsed.container
        separator = container.separator or "::"

        if container.item_key_closure is not None:
            spec = KeySpecification(
                strategy=KeyStrategy.ITEM_CLOSURE,
                separator=separator,
                prefix=container.prefix,
                item_closure=container.item_key_closure,
            )
            logger.debug("Resolved '%s' key: %s", parsed.name, spec.strategy.value)
            return spec, []

        if parsed.is_enum:
            return self._resolve_variants(parsed, separator)

        spec = self._resolve_fields(parsed.key_fields, separator, container.prefix)
        if spec is None:
            return None, [
                KeyResolutionError(
                    parsed.name,
                    rule="no key mechanism: no field is marked 'key' and no item key closure is set",
                    remedy="mark at least one field with 'key' or set 'key = <transform>' on the type",
                )
            ]
        logger.debug("Resolved '%s' key: %s %s", parsed.name, spec.strategy.value, spec.layout)
        return spec, []

    def _resolve_variants(
        self, parsed: ParsedSchema, separator: str
    ) -> tuple[KeySpecification | None, list[Diagnostic]]:
        errors: list[Diagnostic] = []
        variants: dict[str, KeySpecification] = {}

        for variant in parsed.variants:
            spec = self._resolve_fields(variant.key_fields, separator, parsed.container.prefix)
            if spec is None:
                errors.append(
                    KeyResolutionError(
                        f"{parsed.name}.{variant.name}",
                        rule=f"unkeyable variant: '{variant.name}' has no field marked 'key'",
                        remedy="mark a field of every variant with 'key' or set an item key closure",
                    )
                )
                continue
            variants.setdefault(variant.name, spec)

        if errors:
            return None, errors
        spec = KeySpecification(
            strategy=KeyStrategy.PER_VARIANT,
            separator=separator,
            prefix=parsed.container.prefix,
            variants=variants,
        )
        logger.debug(
            "Resolved '%s' key: %s (%d variants)", parsed.name, spec.strategy.value, len(variants)
        )
        return spec, []

    @staticmethod
    def _resolve_fields(
        key_fields: Sequence[FieldDescriptor], separator: str, prefix: str | None
    ) -> KeySpecification | None:
        if not key_fields:
            return None

        transforms = {f.name: f.key_transform for f in key_fields if f.key_transform is not None}
        if len(key_fields) == 1:
            strategy = KeyStrategy.FIELD_CLOSURE if transforms else KeyStrategy.SINGLE_FIELD
        else:
            strategy = KeyStrategy.COMPOSITE_FIELDS

        return KeySpecification(
            strategy=strategy,
            fields=tuple(f.name for f in sorted(key_fields, key=lambda f: f.position)),
            transforms=transforms,
            separator=separator,
            prefix=prefix,
        )

    def assemble(self, spec: KeySpecification, parsed: ParsedSchema) -> KeyAssemblyPlan:
        """Build the runtime plan for a resolved specification.

        Must only be called for a schema that validated cleanly.
        """
        if spec.strategy is KeyStrategy.ITEM_CLOSURE:
            closure = self.transforms.get(spec.item_closure or "")
            if closure is None:
                raise KeyError(f"transform '{spec.item_closure}' is not registered")
            return KeyAssemblyPlan(specification=spec, closure=closure)

        if spec.strategy is KeyStrategy.PER_VARIANT:
            by_name = {v.name: v.fields for v in parsed.variants}
            return KeyAssemblyPlan(
                specification=spec,
                variants={
                    name: self._assemble_fields(variant_spec, by_name[name], parsed)
                    for name, variant_spec in spec.variants.items()
                },
            )

        return self._assemble_fields(spec, parsed.fields, parsed)

    def _assemble_fields(
        self,
        spec: KeySpecification,
        fields: Sequence[FieldDescriptor],
        parsed: ParsedSchema,
    ) -> KeyAssemblyPlan:
        by_name = {f.name: f for f in fields}
        parts = []
        for name in spec.fields:
            descriptor = by_name[name]
            transform = spec.transforms.get(name)
            render = self.types.resolve(descriptor.type, parsed.generic_names).render
            parts.append(
                KeyPart(
                    name=name,
                    render=render or str,
                    transform=transform,
                    transform_fn=self.transforms.get(transform) if transform else None,
                )
            )
        return KeyAssemblyPlan(specification=spec, parts=tuple(parts))
