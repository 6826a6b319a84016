"""
Classes in :py:mod:`jsonapi_codec.models` describe the resource types the codec knows of.

Synopsis
--------

.. code-block:: python

   import datetime

   from jsonapi_codec.models import ResourceTypeRegistry

   registry = ResourceTypeRegistry.from_definitions(
       {
           "user": {
               "name": {"type": str},
               "birthday": {"type": datetime.date},
               "spouse": {"link": "user", "inverse": "spouse"},
               "ownedPets": {"link": "animal", "array": True, "inverse": "owner"},
           },
           "animal": {
               "name": {"type": str},
               "nicknames": {"type": str, "array": True},
               "owner": {"link": "user", "inverse": "ownedPets"},
           },
       }
   )
"""

import collections.abc
import typing
from collections import OrderedDict

from .exceptions import InvalidDeclarationError

DEFAULT_PRIMARY_KEY = "id"


class ResourceMemberDescriptor:
    parent: typing.Optional["ResourceDescriptor"] = None
    name: str
    is_array: bool

    T = typing.TypeVar("T", bound="ResourceMemberDescriptor")

    def bind(self: T, parent: "ResourceDescriptor") -> T:
        self.parent = parent
        return self


class ResourceAttributeDescriptor(ResourceMemberDescriptor):
    """
    Describes an attribute field. ``type`` is the declared value type the wire values
    are cast to; ``None`` means the values are passed through untouched.
    """

    type: typing.Optional[typing.Callable[..., typing.Any]]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, type={self.type!r}, is_array={self.is_array!r})"

    def __init__(
        self,
        name: str,
        type: typing.Optional[typing.Callable[..., typing.Any]] = None,
        is_array: bool = False,
    ):
        self.name = name
        self.type = type
        self.is_array = is_array


class ResourceRelationshipDescriptor(ResourceMemberDescriptor):
    """
    Describes a link field. This is a super-class of the following classes:

    * :py:class:`ResourceToOneRelationshipDescriptor`
    * :py:class:`ResourceToManyRelationshipDescriptor`
    """

    destination: str
    """
    The name of the resource type on the other side of the link.
    """
    inverse: typing.Optional[str]
    """
    The name of the field on the other side that mirrors this one.
    """
    denormalized_inverse: bool
    """
    Set to :py:const:`True` if the field is computed from the other side of the link.
    Such a field is read-only and never reachable by a route.
    """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, destination={self.destination!r})"

    def __init__(
        self,
        name: str,
        destination: str,
        inverse: typing.Optional[str] = None,
        denormalized_inverse: bool = False,
    ):
        self.name = name
        self.destination = destination
        self.inverse = inverse
        self.denormalized_inverse = denormalized_inverse


class ResourceToOneRelationshipDescriptor(ResourceRelationshipDescriptor):
    is_array = False
    """
    Always set to :py:const:`False`.
    """


class ResourceToManyRelationshipDescriptor(ResourceRelationshipDescriptor):
    is_array = True
    """
    Always set to :py:const:`True`.
    """


FieldDescriptor = typing.Union[ResourceAttributeDescriptor, ResourceRelationshipDescriptor]


class ResourceDescriptor:
    """
    A :py:class:`ResourceDescriptor` holds the field definitions of a resource type.

    :param str name: The name of the resource type.
    :param Iterable[ResourceAttributeDescriptor] attributes: The descriptors for the attributes.
    :param Iterable[ResourceRelationshipDescriptor] relationships: The descriptors for the link fields.
    """

    name: str
    """
    The name of the resource type.
    """
    _attributes: typing.MutableMapping[str, ResourceAttributeDescriptor]
    _relationships: typing.MutableMapping[str, ResourceRelationshipDescriptor]

    @property
    def attributes(self) -> typing.Mapping[str, ResourceAttributeDescriptor]:
        """
        The mapping of attribute names to :py:class:`ResourceAttributeDescriptor`s.
        """
        return self._attributes

    @property
    def relationships(self) -> typing.Mapping[str, ResourceRelationshipDescriptor]:
        """
        The mapping of link field names to :py:class:`ResourceRelationshipDescriptor`s.
        """
        return self._relationships

    @property
    def field_names(self) -> typing.Sequence[str]:
        """
        Every declared field name, attributes first, in declaration order.
        """
        return [*self._attributes.keys(), *self._relationships.keys()]

    def get_field(self, name: str) -> typing.Optional[FieldDescriptor]:
        """
        Returns the descriptor of the field named ``name``, or :py:const:`None` if no such
        field is declared.
        """
        attr = self._attributes.get(name)
        if attr is not None:
            return attr
        return self._relationships.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._attributes or name in self._relationships

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    def __init__(
        self,
        name: str,
        attributes: typing.Iterable[ResourceAttributeDescriptor] = (),
        relationships: typing.Iterable[ResourceRelationshipDescriptor] = (),
    ) -> None:
        self.name = name
        self._attributes = OrderedDict((attr.name, attr.bind(self)) for attr in attributes)
        self._relationships = OrderedDict((rel.name, rel.bind(self)) for rel in relationships)
        for name in self._attributes:
            if name in self._relationships:
                raise InvalidDeclarationError(
                    f'field "{name}" of "{self.name}" is declared both as an attribute and a link'
                )


class ResourceTypeRegistry(typing.Mapping[str, ResourceDescriptor]):
    """
    An immutable mapping from resource type names to :py:class:`ResourceDescriptor`s.

    :param Iterable[ResourceDescriptor] descriptors: the resource descriptors.
    :param str primary_key: the name of the distinguished identifier field of records.
    """

    primary_key: str
    _descrs: "OrderedDict[str, ResourceDescriptor]"

    def __getitem__(self, name: str) -> ResourceDescriptor:
        return self._descrs[name]

    def __iter__(self) -> typing.Iterator[str]:
        return iter(self._descrs)

    def __len__(self) -> int:
        return len(self._descrs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self._descrs)!r})"

    def _validate(self) -> None:
        for descr in self._descrs.values():
            if self.primary_key in descr:
                raise InvalidDeclarationError(
                    f'"{descr.name}" declares the primary key "{self.primary_key}" as a field'
                )
            for rel in descr.relationships.values():
                dest = self._descrs.get(rel.destination)
                if dest is None:
                    raise InvalidDeclarationError(
                        f'link "{rel.name}" of "{descr.name}" refers to an unknown type "{rel.destination}"'
                    )
                if rel.inverse is not None:
                    inverse = dest.relationships.get(rel.inverse)
                    if inverse is None:
                        raise InvalidDeclarationError(
                            f'inverse "{rel.inverse}" of link "{rel.name}" on "{descr.name}" '
                            f'is not a link on "{dest.name}"'
                        )
                    if inverse.destination != descr.name:
                        raise InvalidDeclarationError(
                            f'inverse "{rel.inverse}" on "{dest.name}" does not link back to "{descr.name}"'
                        )

    @classmethod
    def from_definitions(
        cls,
        definitions: typing.Mapping[str, typing.Mapping[str, typing.Mapping[str, typing.Any]]],
        primary_key: str = DEFAULT_PRIMARY_KEY,
    ) -> "ResourceTypeRegistry":
        """
        Builds a registry from plain field definitions. Each field is either an attribute
        ``{"type": value_type, "array": bool}`` or a link ``{"link": type_name, "array": bool,
        "inverse": field_name, "denormalized_inverse": bool}``. The camel cased spellings
        ``isArray`` and ``denormalizedInverse`` are accepted as well.

        :param definitions: the field definitions keyed by type name.
        :param str primary_key: the name of the identifier field.
        :return: a new :py:class:`ResourceTypeRegistry`.
        """
        descrs = []
        for type_name, fields in definitions.items():
            attributes: typing.List[ResourceAttributeDescriptor] = []
            relationships: typing.List[ResourceRelationshipDescriptor] = []
            for field_name, definition in fields.items():
                if not isinstance(definition, collections.abc.Mapping):
                    raise InvalidDeclarationError(
                        f'definition of "{type_name}.{field_name}" must be a mapping'
                    )
                is_array = bool(definition.get("array", definition.get("isArray", False)))
                link = definition.get("link")
                if link is not None:
                    if "type" in definition:
                        raise InvalidDeclarationError(
                            f'"{type_name}.{field_name}" cannot be both a link and an attribute'
                        )
                    rel_class: typing.Type[ResourceRelationshipDescriptor] = (
                        ResourceToManyRelationshipDescriptor
                        if is_array
                        else ResourceToOneRelationshipDescriptor
                    )
                    relationships.append(
                        rel_class(
                            name=field_name,
                            destination=link,
                            inverse=definition.get("inverse"),
                            denormalized_inverse=bool(
                                definition.get(
                                    "denormalized_inverse",
                                    definition.get("denormalizedInverse", False),
                                )
                            ),
                        )
                    )
                else:
                    attributes.append(
                        ResourceAttributeDescriptor(
                            name=field_name,
                            type=definition.get("type"),
                            is_array=is_array,
                        )
                    )
            descrs.append(ResourceDescriptor(type_name, attributes, relationships))
        return cls(descrs, primary_key=primary_key)

    def __init__(
        self,
        descriptors: typing.Iterable[ResourceDescriptor],
        primary_key: str = DEFAULT_PRIMARY_KEY,
    ):
        self.primary_key = primary_key
        self._descrs = OrderedDict((descr.name, descr) for descr in descriptors)
        self._validate()
