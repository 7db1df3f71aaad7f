"""
Tests for the shared helpers.

Scope
- Missing sentinel: singleton identity, falsy semantics, pickling, finality.
- coalesce/rename/ordinal behavior.
- ReflectiveType: mirrored read-only fields, typename and repr.
- mglob: module globbing over the installed package.

Conventions
- Test method names follow CamelCase per project convention.
"""
import copy
import pickle
import unittest
from unittest import TestCase

from helmsman.utils import *


class MissingTest(TestCase):
    """Semantic guarantees of the Missing sentinel."""

    def testSingleton(self):
        self.assertIs(MissingType(), Missing)
        self.assertIs(MissingType(), MissingType())

    def testFalsyButNotNone(self):
        self.assertFalse(Missing)
        self.assertIsNot(Missing, None)
        self.assertNotEqual(Missing, 0)

    def testRepr(self):
        self.assertEqual(repr(Missing), "Missing")

    def testCopyAndPickleKeepIdentity(self):
        self.assertIs(copy.copy(Missing), Missing)
        self.assertIs(copy.deepcopy(Missing), Missing)
        self.assertIs(pickle.loads(pickle.dumps(Missing)), Missing)

    def testCannotSubclass(self):
        with self.assertRaises(TypeError):
            class Other(MissingType):  # NOQA: F-841
                pass


class HelpersTest(TestCase):

    def testCoalesceOnlyReplacesMissing(self):
        self.assertEqual(coalesce(Missing, "fallback"), "fallback")
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 5), 0)
        self.assertIsNone(coalesce(Missing))

    def testRenameDirectAndDecorator(self):
        def function():
            pass

        self.assertEqual(rename(function, "alias").__name__, "alias")

        @rename("other")
        def second():
            pass

        self.assertEqual(second.__name__, "other")
        self.assertEqual(second.__qualname__, "other")

    def testRenameRejectsBadArguments(self):
        with self.assertRaises(TypeError):
            rename(42, "name")
        with self.assertRaises(TypeError):
            rename()

    def testOrdinalWordsAndSuffixes(self):
        self.assertEqual(ordinal(1), "first")
        self.assertEqual(ordinal(10), "tenth")
        self.assertEqual(ordinal(11), "11th")
        self.assertEqual(ordinal(12), "12th")
        self.assertEqual(ordinal(21), "21st")
        self.assertEqual(ordinal(102), "102nd")
        self.assertEqual(ordinal(113), "113th")


class ReflectiveTypeTest(TestCase):

    def setUp(self):
        class SampleValue(metaclass=ReflectiveType):
            __introspectable__ = ("label", "items")

            def __init__(self, label, items):
                self._label = label
                self._items = items

        self.cls = SampleValue

    def testTypename(self):
        self.assertEqual(self.cls.__typename__, "sample-value")

    def testMirroredFieldsAreReadOnlyViews(self):
        value = self.cls("a", [1, 2])
        self.assertEqual(value.label, "a")
        self.assertEqual(value.items, (1, 2))
        with self.assertRaises(AttributeError):
            value.label = "b"

    def testRepr(self):
        self.assertEqual(repr(self.cls("a", [1])), "sample-value(label='a', items=(1,))")


class ModuleGlobTest(TestCase):

    def testConcreteNameIsReturnedAsIs(self):
        self.assertEqual(mglob("helmsman.console"), ["helmsman.console"])

    def testWildcardListsSubmodules(self):
        modules = mglob("helmsman.*")
        self.assertIn("helmsman.console", modules)
        self.assertIn("helmsman.targets", modules)
        self.assertEqual(modules, sorted(modules))

    def testSegmentWildcards(self):
        self.assertEqual(mglob("helmsman.c*"), ["helmsman.commands", "helmsman.console"])
        self.assertEqual(mglob("helmsman.[lp]*s"), ["helmsman.logs", "helmsman.parsers", "helmsman.prompts"])

    def testDoubleStarSpansAnyDepth(self):
        modules = mglob("helmsman.**")
        self.assertEqual(modules[0], "helmsman")
        self.assertIn("helmsman.builtin", modules)

    def testPatternMustStartConcrete(self):
        with self.assertRaises(ValueError):
            mglob("*.commands")
        with self.assertRaises(ValueError):
            mglob("")
        with self.assertRaises(TypeError):
            mglob(None)

    def testUnknownPackageYieldsNothing(self):
        self.assertEqual(mglob("helmsman_missing_package.*"), [])


if __name__ == "__main__":
    unittest.main()
