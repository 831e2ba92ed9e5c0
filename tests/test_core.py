import os
import sys
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../')))

from formstate import core
from formstate.core import batch_updates, create_effect, create_signal, untrack, unwrap

count, set_count = create_signal(0)


def count_up(value):
    set_count(count() + value)
    return count()


def test_count():
    assert count_up(1) == 1


class TestSignals(unittest.TestCase):
    def tearDown(self):
        core.set_global_error_handler(core.global_error_handler)

    def test_effect_reruns_when_dependency_changes(self):
        name, set_name = create_signal("bill")
        seen = []
        create_effect(lambda: seen.append(name()))

        set_name("robin")
        set_name("robin")  # equal value, no notification

        self.assertEqual(seen, ["bill", "robin"])

    def test_type_change_notifies(self):
        value, set_value = create_signal(0)
        seen = []
        create_effect(lambda: seen.append(value()))

        set_value(False)
        set_value(False)

        self.assertEqual(len(seen), 2)
        self.assertIs(seen[-1], False)

    def test_batch_defers_effects_but_not_writes(self):
        first, set_first = create_signal(1)
        second, set_second = create_signal(2)
        runs = []
        create_effect(lambda: runs.append(first() + second()))

        def perform_updates():
            set_first(10)
            set_second(20)
            # Reads inside the batch see the new values
            self.assertEqual(first(), 10)
            self.assertEqual(runs, [3])

        batch_updates(perform_updates)
        self.assertEqual(runs, [3, 30])

    def test_dispose_stops_notifications(self):
        value, set_value = create_signal(0)
        seen = []
        effect = create_effect(lambda: seen.append(value()))
        effect.dispose()
        set_value(1)
        self.assertEqual(seen, [0])

    def test_untrack_and_peek_do_not_subscribe(self):
        tracked, set_tracked = create_signal("a")
        hidden, set_hidden = create_signal("b")
        seen = []
        create_effect(lambda: seen.append((tracked(), untrack(hidden), hidden.peek())))

        set_hidden("c")
        self.assertEqual(seen, [("a", "b", "b")])
        set_tracked("x")
        self.assertEqual(seen[-1], ("x", "c", "c"))

    def test_effect_errors_go_to_global_handler(self):
        errors = []
        core.set_global_error_handler(lambda error, description=None: errors.append(error))
        value, set_value = create_signal(0)

        def failing():
            if value() > 0:
                raise RuntimeError("boom")

        create_effect(failing)
        set_value(1)

        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], RuntimeError)

    def test_unwrap(self):
        signal, _ = create_signal(5)
        self.assertEqual(unwrap(signal), 5)
        self.assertEqual(unwrap(7), 7)


if __name__ == '__main__':
    unittest.main()
