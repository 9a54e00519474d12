import unittest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../')))

from formstore.form.manipulator import FormManipulator
from formstore.form.pipeline import ValidationPipeline
from formstore.form.state import FormState


def make_manipulator(**pipeline_options):
    return FormManipulator(
        ValidationPipeline(**pipeline_options),
        initial_values={"name": "Ada", "tags": ["a"]},
        initial_errors={"name": "initial error"},
        initial_touches={"name": True},
    )


class TestSetters(unittest.TestCase):
    def setUp(self):
        self.manipulator = make_manipulator()

    def test_set_value_marks_changes(self):
        state = FormState(values={"name": "Ada"})
        result = self.manipulator.set_value(state, "name", "Grace")
        self.assertIs(result, state)
        self.assertEqual(state.values, {"name": "Grace"})
        self.assertTrue(state.exists_changes)

    def test_set_value_twice_is_idempotent(self):
        state = FormState(values={})
        self.manipulator.set_value(state, "a.b", 1)
        snapshot = state.to_record()
        self.manipulator.set_value(state, "a.b", 1)
        self.assertEqual(state.to_record(), snapshot)
        self.assertTrue(state.exists_changes)

    def test_set_value_equal_value_still_marks_changes(self):
        state = FormState(values={"name": "Ada"})
        self.manipulator.set_value(state, "name", "Ada")
        self.assertTrue(state.exists_changes)

    def test_set_value_copies_the_value(self):
        state = FormState(values={})
        tags = ["x"]
        self.manipulator.set_value(state, "tags", tags)
        tags.append("y")
        self.assertEqual(state.values["tags"], ["x"])

    def test_set_error_and_clear(self):
        state = FormState()
        self.manipulator.set_error(state, "user.email", "Bad")
        self.assertEqual(state.errors, {"user": {"email": "Bad"}})
        self.manipulator.set_error(state, "user.email", None)
        self.assertEqual(state.errors, {"user": {"email": None}})

    def test_set_error_none_on_absent_path_is_noop(self):
        state = FormState()
        self.manipulator.set_error(state, "user.email", None)
        self.assertEqual(state.errors, {})

    def test_set_touched(self):
        state = FormState()
        self.manipulator.set_touched(state, "items[0].name", True)
        self.assertEqual(state.touches, {"items": [{"name": True}]})


class TestGetters(unittest.TestCase):
    def setUp(self):
        self.manipulator = make_manipulator()
        self.state = FormState(
            values={"user": {"email": "a@b.co"}},
            errors={"user": {"email": "Bad", "nested": {"x": "y"}}},
            touches={"user": {"email": True}},
        )

    def test_get_value(self):
        self.assertEqual(self.manipulator.get_value(self.state, "user.email"), "a@b.co")
        self.assertIsNone(self.manipulator.get_value(self.state, "user.name"))

    def test_get_error_returns_copy(self):
        nested = self.manipulator.get_error(self.state, "user.nested")
        nested["x"] = "mutated"
        self.assertEqual(self.state.errors["user"]["nested"], {"x": "y"})
        self.assertEqual(self.manipulator.get_error(self.state, "user.email"), "Bad")

    def test_get_touched_absent_is_false(self):
        self.assertTrue(self.manipulator.get_touched(self.state, "user.email"))
        self.assertIs(self.manipulator.get_touched(self.state, "user.name"), False)


class TestReset(unittest.TestCase):
    def setUp(self):
        self.manipulator = make_manipulator()
        self.state = FormState(
            values={"name": "Grace", "tags": ["a", "b"]},
            errors={"other": "x"},
            touches={"other": True},
            is_valid=False,
            loading=True,
            exists_changes=True,
            is_submitted=True,
        )

    def test_reset_to_initial(self):
        self.manipulator.reset(self.state)
        self.assertEqual(self.state, FormState(
            values={"name": "Ada", "tags": ["a"]},
            errors={"name": "initial error"},
            touches={"name": True},
        ))

    def test_reset_with_replacement_values(self):
        self.manipulator.reset(self.state, {"name": "Linus"})
        self.assertEqual(self.state.values, {"name": "Linus"})
        self.assertEqual(self.state.errors, {"name": "initial error"})
        self.assertFalse(self.state.is_submitted)

    def test_reset_with_transform_of_current_values(self):
        self.manipulator.reset(self.state, lambda values: {**values, "name": "kept " + values["name"]})
        self.assertEqual(self.state.values, {"name": "kept Grace", "tags": ["a", "b"]})
        self.assertFalse(self.state.loading)

    def test_reset_transform_receives_a_copy(self):
        current = self.state.values

        def transform(values):
            values["name"] = "mutated"
            return values

        self.manipulator.reset(self.state, transform)
        self.assertEqual(self.state.values["name"], "mutated")
        self.assertEqual(current["name"], "Grace")
        self.assertIsNot(self.state.values, current)

    def test_reset_does_not_alias_initial_snapshots(self):
        self.manipulator.reset(self.state)
        self.state.values["tags"].append("z")
        self.state.errors["name"] = "changed"
        self.assertEqual(self.manipulator.initial_values, {"name": "Ada", "tags": ["a"]})
        self.assertEqual(self.manipulator.initial_errors, {"name": "initial error"})

    def test_reset_does_not_validate(self):
        manipulator = make_manipulator(validate=lambda s: {"name": "always"})
        manipulator.reset(self.state)
        self.assertEqual(self.state.errors, {"name": "initial error"})
        self.assertTrue(self.state.is_valid)


class TestValidate(unittest.TestCase):
    def test_delegates_to_pipeline(self):
        manipulator = make_manipulator(field_validators={"name": lambda value: "bad" if value == "x" else None})
        state = FormState(values={"name": "x"})
        self.assertIs(manipulator.validate(state), state)
        self.assertEqual(state.errors, {"name": "bad"})
        self.assertFalse(state.is_valid)


if __name__ == '__main__':
    unittest.main()
