'''Serialization of result systems, processing configurations and results.

Two flavours are provided. The typed flavour (:func:`to_dict` and
:func:`from_dict`) keeps exact numbers and ballot containers intact so that
a result system or a processing configuration stored as JSON comes back as
the same object. Only govtally classes can be reconstructed this way.
The plain flavour (:func:`plain_value`) produces JSON-ready values for the
rendering side, where a Fraction is just a number and a timestamp is just
an ISO 8601 string.
'''

import enum
import inspect
import importlib
import datetime as dt
from datetime import datetime
from fractions import Fraction
from decimal import Decimal
from typing import Any, List, Dict, Callable, Tuple


PACKAGE = 'govtally'


def simple_serialization(class_: type) -> type:
    '''A decorator to provide a to_dict() method storing constructor args.

    Every constructor parameter must be kept as an attribute of the same
    name, which holds for the parsers, converters, result systems and
    configurations of govtally.

    :param class_: The class to add the method to.
    '''
    param_names = _constructor_params(class_)

    def to_dict(self) -> Dict[str, Any]:
        out_dict = {'class': scoped_class_name(self)}
        for attr in param_names:
            out_dict[attr] = serialize_value(getattr(self, attr))
        return out_dict

    class_.to_dict = to_dict
    return class_


def _constructor_params(class_: type) -> List[str]:
    if class_.__init__ is object.__init__:
        return []
    # the first parameter is self
    return list(inspect.signature(class_.__init__).parameters)[1:]


def serialize_value(value: Any) -> Any:
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    elif isinstance(value, enum.Enum):
        return {'type': scoped_class_name(value), 'value': value.value}
    elif value is None or isinstance(value, ATOMIC_TYPES):
        return value
    elif type(value) in ENCODERS:
        typename, encoder = ENCODERS[type(value)]
        return {'type': typename, **encoder(value)}
    elif isinstance(value, dict):
        if all(isinstance(key, str) for key in value):
            return {key: serialize_value(val) for key, val in value.items()}
        return {
            'type': 'dict',
            'items': [
                [serialize_value(key), serialize_value(val)]
                for key, val in value.items()
            ],
        }
    elif isinstance(value, list):
        return [serialize_value(val) for val in value]
    else:
        raise ValueError(f'cannot serialize {value!r} to dict format')


def deserialize_value(value: Any) -> Any:
    if value is None or isinstance(value, ATOMIC_TYPES):
        return value
    elif isinstance(value, list):
        return [deserialize_value(val) for val in value]
    elif isinstance(value, dict):
        typename = value.get('type')
        if 'class' in value:
            return deserialize_class(value)
        elif isinstance(typename, str) and (
            typename in DECODERS or is_govtally_name(typename)
        ):
            return deserialize_typed(value)
        else:
            return {key: deserialize_value(val) for key, val in value.items()}
    else:
        raise ValueError(f'cannot deserialize {value!r}, type unknown')


def deserialize_typed(typedef: Dict[str, Any]) -> Any:
    typename = typedef['type']
    try:
        if typename in DECODERS:
            return DECODERS[typename](typedef)
        else:
            # enumerations
            return import_object(typename)(typedef['value'])
    except (KeyError, TypeError) as err:
        raise ValueError(f'invalid typed value contents: {typedef!r}') from err


def deserialize_class(clsdef: Dict[str, Any]) -> Any:
    cls = import_object(clsdef['class'])
    params = {
        key: deserialize_value(val)
        for key, val in clsdef.items() if key != 'class'
    }
    return cls(**params)


def import_object(identifier: str) -> Any:
    '''Find a govtally class by its scoped name.

    :raises ValueError: If the name does not point into govtally or the
        object does not exist.
    '''
    if not is_govtally_name(identifier):
        raise ValueError(f'not a govtally object name: {identifier!r}')
    module_name, name = identifier.rsplit('.', 1)
    try:
        module = importlib.import_module(module_name)
    except ImportError as err:
        raise ValueError(f'unknown govtally module: {module_name}') from err
    if not hasattr(module, name):
        raise ValueError(f'unknown govtally object: {identifier}')
    return getattr(module, name)


def from_dict(value: Dict[str, Any]) -> Any:
    """Reconstruct a govtally object from a JSON-like dictionary.

    :param value: A dictionary created by :func:`to_dict`.
    """
    if not isinstance(value, dict):
        raise ValueError('invalid govtally object def: dict expected, '
                         f'got {value!r}')
    elif 'class' not in value:
        raise ValueError('invalid govtally object def: must have a class key')
    elif not is_govtally_name(value['class']):
        inval_cls = value['class']
        raise ValueError(f"invalid govtally class def: {inval_cls}")
    else:
        return deserialize_class(value)


def to_dict(obj: Any) -> Dict[str, Any]:
    """Serialize a govtally object to a JSON-ready dictionary.

    :param obj: A result system, ballot parser, converter, processing
        configuration or the like. It should provide a `to_dict()` method
        (courtesy of the simple_serialization decorator).
    """
    return serialize_value(obj)


def plain_value(value: Any) -> Any:
    '''Convert a value into plain JSON types, dropping exact type info.

    Rationals and decimals become floats (integers stay integers),
    timestamps become ISO 8601 strings, enumerations their values and sets
    sorted lists. Mapping keys are stringified as JSON requires.
    '''
    if isinstance(value, enum.Enum):
        return value.value
    elif value is None or isinstance(value, (bool, int, str)):
        return value
    elif isinstance(value, (float, Fraction, Decimal)):
        return float(value)
    elif isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    elif hasattr(value, 'items'):
        return {str(key): plain_value(val) for key, val in value.items()}
    elif isinstance(value, (set, frozenset)):
        return sorted(plain_value(val) for val in value)
    elif hasattr(value, '__iter__'):
        return [plain_value(val) for val in value]
    else:
        raise ValueError(f'cannot convert {value!r} to a plain value')


def is_govtally_name(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    chunks = value.split('.')
    return (
        len(chunks) >= 2
        and chunks[0] == PACKAGE
        and all(chunk.isidentifier() for chunk in chunks)
    )


def scoped_class_name(value: Any) -> str:
    cls = value.__class__
    return '.'.join((cls.__module__, cls.__name__))


def _decode_dict(typedef: Dict[str, Any]) -> Dict[Any, Any]:
    return {
        deserialize_value(key): deserialize_value(val)
        for key, val in typedef['items']
    }


def _decode_sequence(seqtype: type) -> Callable[[Dict[str, Any]], Any]:
    def decode(typedef: Dict[str, Any]) -> Any:
        return seqtype(deserialize_value(val) for val in typedef['value'])
    return decode


def _encode_sequence(seq: Any) -> Dict[str, Any]:
    items = sorted(seq) if isinstance(seq, frozenset) else seq
    return {'value': [serialize_value(val) for val in items]}


ATOMIC_TYPES: Tuple[type, ...] = (str, int, float, bool)

# exact numbers, timestamps and the ballot containers
ENCODERS: Dict[type, Tuple[str, Callable[[Any], Dict[str, Any]]]] = {
    Fraction: (
        'Fraction', lambda f: {'arguments': list(f.as_integer_ratio())}
    ),
    Decimal: ('Decimal', lambda d: {'value': str(d)}),
    datetime: ('datetime', lambda d: {'isoformat': d.isoformat()}),
    tuple: ('tuple', _encode_sequence),
    frozenset: ('frozenset', _encode_sequence),
}

DECODERS: Dict[str, Callable[[Dict[str, Any]], Any]] = {
    'Fraction': lambda typedef: Fraction(*typedef['arguments']),
    'Decimal': lambda typedef: Decimal(typedef['value']),
    'datetime': lambda typedef: datetime.fromisoformat(typedef['isoformat']),
    'tuple': _decode_sequence(tuple),
    'frozenset': _decode_sequence(frozenset),
    'dict': _decode_dict,
}
