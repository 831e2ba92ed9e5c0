from typing import Any, Callable, Dict, Optional

from formstate.form.errors import FieldError, FormErrors, flatten_errors, is_error, merge_errors
from formstate.utils.async_task import maybe_await
from formstate.utils.path import get_nested_value

# (value, values) -> FieldError, or an awaitable resolving to one
FieldValidate = Callable[[Any, Any], Any]


def compose_validators(*validators: Optional[FieldValidate]) -> Optional[FieldValidate]:
    """
    Chains field validators; the first one to report an error wins.

    ``None`` entries are ignored, so optional validators can be passed inline.
    Returns ``None`` when nothing is left to compose.
    """
    validators = [validate for validate in validators if validate is not None]
    if not validators:
        return None

    async def composed(value: Any, values: Any) -> FieldError:
        for validate in validators:
            error = await maybe_await(validate(value, values))
            if error is not None:
                return error
        return None

    return composed


def create_validator(field_validators: Dict[str, FieldValidate],
                     form_validator: Optional[Callable[[Any], Any]] = None) -> Callable[[Any], Any]:
    """
    Builds a form validator from per-field validators.

    Args:
        field_validators: Mapping from dotted path to a field validator. Each
            one receives the value at its path and the whole value tree.
        form_validator: Optional whole-form validator (e.g. cross-field checks)
            whose result is merged in after the field errors.

    Returns:
        An async ``(values) -> errors`` callable usable as ``on_validate``.
    """
    async def validate(values: Any) -> FormErrors:
        errors: FormErrors = {}
        for path, field_validate in field_validators.items():
            error = await maybe_await(field_validate(get_nested_value(values, path), values))
            if is_error(error):
                errors[path] = error

        if form_validator is not None:
            result = await maybe_await(form_validator(values))
            if result:
                return merge_errors([errors, flatten_errors(result)])
        return errors

    return validate
