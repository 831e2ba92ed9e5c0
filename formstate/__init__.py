from .core import Signal, Effect, batch_updates, create_effect, create_signal, set_global_error_handler, untrack, unwrap
from .exceptions import FormError, FormConfigError, PathError
from .form import (
    FieldAccessProxy,
    FieldUsage,
    FormState,
    compose_validators,
    create_form,
    create_validator,
    flatten_errors,
    has_errors,
    is_error,
    merge_errors,
    merge_field_errors,
)
from .utils.path import DELETE, build_path_map, get_nested_value, set_nested_value, split_path, join_path

__version__ = "0.1.0"

get_version = lambda: __version__

__all__ = [
    'DELETE',
    'Effect',
    'FieldAccessProxy',
    'FieldUsage',
    'FormConfigError',
    'FormError',
    'FormState',
    'PathError',
    'Signal',
    'batch_updates',
    'build_path_map',
    'compose_validators',
    'create_effect',
    'create_form',
    'create_signal',
    'create_validator',
    'flatten_errors',
    'get_nested_value',
    'has_errors',
    'is_error',
    'join_path',
    'merge_errors',
    'merge_field_errors',
    'set_global_error_handler',
    'set_nested_value',
    'split_path',
    'untrack',
    'unwrap',
]
