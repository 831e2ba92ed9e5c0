from typing import Dict, Any, Callable, Optional, List, Union
import logging
from copy import deepcopy

from formstate.core import create_signal, create_effect, batch_updates, handle_error, untrack
from formstate.exceptions import FormConfigError
from formstate.form.errors import (
    FieldError,
    FormErrors,
    error_list,
    first_error,
    flatten_errors,
    has_errors,
    is_error,
    merge_field_errors,
)
from formstate.form.validation import ValidationRunner, ValidateDebounce, get_debounce_values
from formstate.utils.async_task import has_running_loop, maybe_await
from formstate.utils.equality import deep_equal
from formstate.utils.path import (
    DELETE,
    Path,
    build_path_map,
    get_nested_value,
    join_path,
    set_nested_value,
    split_path,
)

logger = logging.getLogger(__name__)

_UNSET = object()

FORM_OPTIONS = (
    "validate_on_change",
    "validate_on_blur",
    "validate_debounce",
    "on_submit",
    "on_validate",
    "on_failed_submit",
)


def _normalize_path(path: Path) -> str:
    return join_path(split_path(path))


def _is_under(key: str, prefix: str) -> bool:
    return key == prefix or key.startswith(prefix + ".")


def _without_subtree(entries: Dict[str, Any], prefix: str) -> Dict[str, Any]:
    return {k: v for k, v in entries.items() if not _is_under(k, prefix)}


def _subtree(entries: Dict[str, Any], prefix: str) -> Dict[str, Any]:
    return {k: v for k, v in entries.items() if _is_under(k, prefix)}


class FieldUsage:
    """
    Handle on a single form field.

    Every attribute is read from the form when accessed, so a handle kept
    across updates never goes stale.
    """

    def __init__(self, form: 'FormState', path: str):
        self._form = form
        self.path = path

    @property
    def value(self) -> Any:
        return self._form.get_field_value(self.path)

    def set_value(self, value: Any) -> None:
        self._form.set_field_value(self.path, value)

    @property
    def error(self) -> Optional[str]:
        return self._form.get_field_error(self.path)

    @property
    def errors(self) -> Optional[List[str]]:
        return self._form.get_field_errors(self.path)

    def set_error(self, error: FieldError) -> None:
        self._form.set_field_error(self.path, error)

    def add_error(self, error: FieldError) -> None:
        self._form.add_field_error(self.path, error)

    @property
    def touched(self) -> bool:
        return self._form.is_field_touched(self.path)

    def set_touched(self, is_touched: bool = True) -> None:
        self._form.set_field_touched(self.path, is_touched)

    @property
    def valid(self) -> bool:
        return self._form.is_field_valid(self.path)

    @property
    def dirty(self) -> bool:
        return self._form.is_field_dirty(self.path)

    def blur(self) -> None:
        self._form.blur(self.path)

    def reset(self, value: Any = _UNSET) -> None:
        self._form.reset_field(self.path, value)

    @property
    def meta(self) -> Dict[str, Any]:
        return {
            "is_valid": self.valid,
            "errors": self.errors,
            "is_touched": self.touched,
            "is_dirty": self.dirty,
        }

    def __repr__(self):
        return f"FieldUsage({self.path!r})"


class FieldAccessProxy:
    """
    Proxy for cleaner field access syntax.
    Enables usage like: form.F.user.email or form.F.friends[0].name
    """
    def __init__(self, form: 'FormState', path: str = ""):
        self._form = form
        self._path = path

    def __getattr__(self, name: str) -> 'FieldAccessProxy':
        if name.startswith("_"):
            raise AttributeError(name)
        new_path = f"{self._path}.{name}" if self._path else name
        return FieldAccessProxy(self._form, new_path)

    def __getitem__(self, key: Union[int, str]) -> 'FieldAccessProxy':
        new_path = f"{self._path}.{key}" if self._path else str(key)
        return FieldAccessProxy(self._form, new_path)

    def _get_field(self) -> FieldUsage:
        if not self._path:
            raise AttributeError("No field selected")
        return self._form.field(self._path)

    @property
    def value(self) -> Any:
        return self._get_field().value

    def set_value(self, val: Any) -> None:
        self._get_field().set_value(val)

    @property
    def meta(self) -> Dict[str, Any]:
        return self._get_field().meta

    @property
    def valid(self) -> bool:
        return self._get_field().valid

    @property
    def errors(self) -> Optional[List[str]]:
        return self._get_field().errors

    @property
    def error(self) -> Optional[str]:
        return self._get_field().error

    @property
    def touched(self) -> bool:
        return self._get_field().touched

    @property
    def dirty(self) -> bool:
        return self._get_field().dirty

    def __call__(self) -> FieldUsage:
        return self._get_field()


class FormState:
    """
    Manages form values, errors, touched state, validation, and submission.

    State is held in signals and read by calling them, e.g. ``form.values()``
    or ``form.errors()``. Reading inside an effect subscribes the effect.
    All writes go through the methods below, each of which applies its
    changes as one batch.
    """
    def __init__(self, initial_values: Union[Any, Callable[[], Any]] = None, *,
                 validate_on_change: bool = True,
                 validate_on_blur: bool = True,
                 validate_debounce: ValidateDebounce = False,
                 on_submit: Optional[Callable[[Any], Any]] = None,
                 on_validate: Optional[Callable[[Any], Any]] = None,
                 on_failed_submit: Optional[Callable[[], Any]] = None):
        if callable(initial_values):
            initial_values = initial_values()
        if initial_values is None:
            initial_values = {}

        self._original_values = deepcopy(initial_values)  # Restored by reset() without arguments

        self.initial_values, self._set_initial_values = create_signal(deepcopy(initial_values))
        self.values, self._set_values = create_signal(deepcopy(initial_values))
        self.valid_values, self._set_valid_values = create_signal(None)
        self.submitted_values, self._set_submitted_values = create_signal(None)
        self.errors, self._set_errors = create_signal({})
        self.touched, self._set_touched = create_signal({})
        self.is_submitting, self._set_is_submitting = create_signal(False)
        self.is_validating, self._set_is_validating = create_signal(False)

        self.validate_on_change = True
        self.validate_on_blur = True
        self.validate_debounce: ValidateDebounce = False
        self.on_submit: Optional[Callable[[Any], Any]] = None
        self.on_validate: Optional[Callable[[Any], Any]] = None
        self.on_failed_submit: Optional[Callable[[], Any]] = None

        self._validation = ValidationRunner(
            get_validator=lambda: self.on_validate,
            get_values=lambda: deepcopy(self.values.peek()),
            on_result=self._apply_validation,
            on_validating=self._set_is_validating,
            on_error=lambda e: handle_error(e, "Error in background validation"),
        )

        self.configure(
            validate_on_change=validate_on_change,
            validate_on_blur=validate_on_blur,
            validate_debounce=validate_debounce,
            on_submit=on_submit,
            on_validate=on_validate,
            on_failed_submit=on_failed_submit,
        )

    def configure(self, **options: Any) -> None:
        """
        Updates form options and hooks in place.

        Hooks are looked up when they are used, so a validation that is
        already scheduled runs with the validator configured last.

        Raises:
            FormConfigError: For unknown option names or an invalid debounce value.
        """
        unknown = set(options) - set(FORM_OPTIONS)
        if unknown:
            raise FormConfigError(f"Unknown form options: {', '.join(sorted(unknown))}")

        if "validate_debounce" in options:
            self._validation.configure(get_debounce_values(options["validate_debounce"]))

        for name, value in options.items():
            setattr(self, name, value)

    # -- Fields ---

    @property
    def F(self) -> FieldAccessProxy:
        """
        Returns a FieldAccessProxy for cleaner field access syntax.
        Usage: form.F.user.email
        """
        return FieldAccessProxy(self)

    def field(self, path: Path) -> FieldUsage:
        return FieldUsage(self, _normalize_path(path))

    def get_field_value(self, path: Path, default: Any = None) -> Any:
        return get_nested_value(self.values(), path, default)

    def set_field_value(self, path: Path, value: Any) -> None:
        """
        Sets the value at a dotted path, e.g. "friends.0.name".

        Passing ``DELETE`` removes the entry and prunes containers it leaves
        empty. Setting a value equal to the current one does nothing.
        Otherwise validation is scheduled when ``validate_on_change`` is on.
        """
        current = self.values.peek()
        previous = get_nested_value(current, path, _UNSET)
        if value is DELETE:
            if previous is _UNSET:
                return
        elif previous is not _UNSET and deep_equal(previous, value):
            return

        new_value = value if value is DELETE else deepcopy(value)
        updated = set_nested_value(deepcopy(current), path, new_value)
        self._commit_values(updated)

    def set_values(self, values: Any) -> None:
        """Replaces the whole value tree with a copy of ``values``."""
        if deep_equal(values, self.values.peek()):
            return
        self._commit_values(deepcopy(values))

    def _commit_values(self, updated: Any) -> None:
        def perform_updates():
            self._set_values(updated)
            if self.validate_on_change:
                self._schedule_validation()

        batch_updates(perform_updates)

    def set_field_error(self, path: Path, error: FieldError) -> None:
        """
        Sets the error at ``path``. ``None`` removes the entry, while an empty
        list is stored as an explicit "no error".
        """
        key = _normalize_path(path)
        errors = dict(self.errors.peek())
        if error is None:
            errors.pop(key, None)
        else:
            errors[key] = list(error) if isinstance(error, (list, tuple)) else error
        self._set_errors(errors)

    def add_field_error(self, path: Path, error: FieldError) -> None:
        """Appends ``error`` to the errors at ``path``; ``None`` and ``[]`` are ignored."""
        if error is None or (isinstance(error, (list, tuple)) and not error):
            return
        key = _normalize_path(path)
        errors = dict(self.errors.peek())
        errors[key] = merge_field_errors(errors.get(key), list(error) if isinstance(error, tuple) else error)
        self._set_errors(errors)

    def get_field_error(self, path: Path) -> Optional[str]:
        """Returns the first error message for a field, if any."""
        return first_error(self.errors().get(_normalize_path(path)))

    def get_field_errors(self, path: Path) -> Optional[List[str]]:
        """Returns all error messages for a field as a list, or None."""
        return error_list(self.errors().get(_normalize_path(path)))

    def set_errors(self, errors: Optional[FormErrors]) -> None:
        """Replaces all errors. Nested error trees are flattened onto dotted paths."""
        self._set_errors(flatten_errors(errors))

    def set_field_touched(self, path: Path, is_touched: bool = True) -> None:
        self._set_touched({**self.touched.peek(), _normalize_path(path): bool(is_touched)})

    def set_touched(self, touched: Optional[Dict[str, bool]]) -> None:
        self._set_touched({_normalize_path(k): bool(v) for k, v in (touched or {}).items()})

    def is_field_touched(self, path: Path) -> bool:
        """Checks if a field has been touched/interacted with."""
        return self.touched().get(_normalize_path(path), False)

    def is_field_valid(self, path: Path) -> bool:
        """Checks if a specific field is valid."""
        return not is_error(self.errors().get(_normalize_path(path)))

    def is_field_dirty(self, path: Path) -> bool:
        """Checks if a field differs from its initial value."""
        return not deep_equal(get_nested_value(self.values(), path, _UNSET),
                             get_nested_value(self.initial_values(), path, _UNSET))

    def blur(self, path: Path) -> None:
        """Marks a field as touched and validates if ``validate_on_blur`` is on."""
        def perform_updates():
            self.set_field_touched(path, True)
            if self.validate_on_blur:
                self._schedule_validation()

        batch_updates(perform_updates)

    # -- Form state ---

    def is_dirty(self) -> bool:
        """Checks if the values differ from the initial values."""
        return not deep_equal(self.values(), self.initial_values())

    def is_valid(self) -> bool:
        """Checks if the entire form is currently valid."""
        return not has_errors(self.errors())

    # -- Validation ---

    def _schedule_validation(self) -> None:
        if self.on_validate is None:
            return
        if not self.is_validating.peek() and deep_equal(self.values.peek(), self.valid_values.peek()):
            logger.debug("Values unchanged since last validation, not revalidating")
            return
        if not has_running_loop():
            logger.warning("No running event loop, validation was not scheduled")
            return
        self._validation.schedule()

    def _apply_validation(self, values: Any, errors: FormErrors) -> None:
        batch_updates(lambda: [
            self._set_errors(errors),
            self._set_valid_values(values),
        ])

    async def validate(self) -> FormErrors:
        """
        Validates the current values immediately, ignoring debounce.

        Returns:
            The flat error map produced by this run. If a newer validation was
            requested while it ran, the map is returned but not applied.
            Without a validator, the current errors are returned unchanged.

        Raises:
            Whatever the validator raises.
        """
        if self.on_validate is None:
            return dict(self.errors.peek())
        return await self._validation.run_now()

    # -- Reset ---

    def reset(self, values: Any = None, is_valid: bool = True) -> None:
        """
        Resets the form to its initial or specified state.

        Args:
            values: New initial values; defaults to the values the form was created with
            is_valid: If False, current errors and touched state are kept
        """
        baseline = deepcopy(self._original_values if values is None else values)

        def perform_updates():
            self._validation.invalidate()
            self._set_initial_values(baseline)
            self._set_values(deepcopy(baseline))
            if is_valid:
                self._set_errors({})
                self._set_touched({})
                self._set_valid_values(deepcopy(baseline))
            else:
                self._set_valid_values(None)

        batch_updates(perform_updates)

    def reset_field(self, path: Path, value: Any = _UNSET) -> None:
        """
        Resets the value at ``path`` and clears errors and touched state at and below it.
        Validation already requested or in flight is discarded.

        Args:
            path: The field or subtree to reset
            value: The new initial value; defaults to the current initial value
        """
        key = _normalize_path(path)
        if value is _UNSET:
            value = get_nested_value(self.initial_values.peek(), key, DELETE)

        def copy_of(v):
            return v if v is DELETE else deepcopy(v)

        initial = set_nested_value(deepcopy(self.initial_values.peek()), key, copy_of(value))
        current = set_nested_value(deepcopy(self.values.peek()), key, copy_of(value))

        def perform_updates():
            self._validation.invalidate()
            self._set_initial_values(initial)
            self._set_values(current)
            self._set_errors(_without_subtree(self.errors.peek(), key))
            self._set_touched(_without_subtree(self.touched.peek(), key))

        batch_updates(perform_updates)

    # -- Submit ---

    async def submit(self) -> None:
        """
        Validates and, if the form is valid, calls ``on_submit`` with a copy of the values.

        Every field is marked as touched first. If validation finds errors,
        ``on_failed_submit`` is called instead and ``submitted_values`` is
        cleared; this is not an exception. A call made while a submit is
        already running is ignored.

        Raises:
            Whatever the validator or ``on_submit`` raises.
        """
        if self.is_submitting.peek():
            logger.debug("Submit already in progress, ignoring")
            return

        self._set_is_submitting(True)
        try:
            self._set_touched({**self.touched.peek(), **build_path_map(self.values.peek(), True)})

            errors = await self.validate()
            if has_errors(errors):
                logger.debug("Submit blocked by validation errors: %s", sorted(errors))
                self._set_submitted_values(None)
                if self.on_failed_submit is not None:
                    await maybe_await(self.on_failed_submit())
                return

            values = deepcopy(self.values.peek())
            self._set_submitted_values(values)
            if self.on_submit is not None:
                await maybe_await(self.on_submit(deepcopy(values)))
        finally:
            self._set_is_submitting(False)

    # -- Observation ---

    def watch(self, path: Path, callback: Callable[[FieldUsage], Any]) -> Callable[[], None]:
        """
        Calls ``callback`` whenever the value at ``path``, or any error or
        touched entry at or below it, changes.

        Args:
            path: The field or subtree to observe
            callback: Receives the FieldUsage for ``path``

        Returns:
            A function that stops the observation
        """
        key = _normalize_path(path)
        previous = _UNSET

        def observe():
            nonlocal previous
            snapshot = (
                get_nested_value(self.values(), key, _UNSET),
                _subtree(self.errors(), key),
                _subtree(self.touched(), key),
            )
            if previous is _UNSET:
                previous = snapshot
                return
            if not deep_equal(snapshot, previous):
                previous = snapshot
                untrack(lambda: callback(self.field(key)))

        effect = create_effect(observe)
        return effect.dispose


def create_form(initial_values: Union[Any, Callable[[], Any]] = None, *,
                validate_on_change: bool = True,
                validate_on_blur: bool = True,
                validate_debounce: ValidateDebounce = False,
                on_submit: Optional[Callable[[Any], Any]] = None,
                on_validate: Optional[Callable[[Any], Any]] = None,
                on_failed_submit: Optional[Callable[[], Any]] = None) -> FormState:
    """
    Factory function to create a FormState instance.

    Args:
        initial_values: Initial value tree, or a zero-argument function returning one.
                        It is copied; later changes to the caller's object do not leak in.
        validate_on_change: Validate after every value change
        validate_on_blur: Validate when a field is blurred
        validate_debounce: ``False`` to validate at once, milliseconds, ``True`` for
                           the default wait, or ``{"wait": ms, "leading": bool}``
        on_submit: Called with the values when a submit passes validation; may be async
        on_validate: ``(values) -> errors`` validator; may be async. Errors may be
                     nested like the values or keyed by dotted path.
        on_failed_submit: Called when a submit fails validation; may be async

    Returns:
        A configured FormState instance.
    """
    return FormState(
        initial_values,
        validate_on_change=validate_on_change,
        validate_on_blur=validate_on_blur,
        validate_debounce=validate_debounce,
        on_submit=on_submit,
        on_validate=on_validate,
        on_failed_submit=on_failed_submit,
    )
