"""Tests for frames.py - call sites, parameter names and backtrace entries."""

import os

import pytest
from bs4 import BeautifulSoup
from html5tagger import E

from faultpage.fault import CallType, StackFrame
from faultpage.frames import (
    INTERNAL_CODE,
    SignatureResolver,
    argument_labels,
    call_site,
    clean_path,
    qualifier,
    render_frame,
)
from tests import samples

EXPLODE_LINE = samples.Widget.explode.__code__.co_firstlineno + 1


def method_frame(**kwargs):
    values = dict(
        file=samples.__file__,
        line=EXPLODE_LINE,
        function="explode",
        class_name="Widget",
        call_type=CallType.INSTANCE,
        module="tests.samples",
        args=(3, "x"),
    )
    values.update(kwargs)
    return StackFrame(**values)


def render(frame, resolver=None, index=0):
    doc = E()
    render_frame(doc, frame, "pid", index, resolver=resolver)
    return BeautifulSoup(str(doc), "html.parser")


class FixedResolver:
    def __init__(self, names):
        self.names = names

    def parameter_names(self, frame):
        return self.names


class BrokenResolver:
    def parameter_names(self, frame):
        raise RuntimeError("resolver exploded")


class TestCleanPath:
    def test_inside_working_directory(self):
        path = os.path.join(os.getcwd(), "pkg", "mod.py")
        assert clean_path(path) == os.path.join("pkg", "mod.py")

    def test_outside_working_directory(self):
        path = os.path.join(os.path.dirname(os.getcwd()), "elsewhere", "mod.py")
        assert clean_path(path) == path


class TestCallSite:
    def test_no_file_is_internal(self):
        assert call_site(StackFrame(function="entry")) == INTERNAL_CODE

    def test_unreadable_file_is_internal(self):
        frame = StackFrame(file="/nonexistent/mod.py", line=3, function="entry")
        assert call_site(frame) == INTERNAL_CODE

    def test_location(self):
        frame = StackFrame(file=samples.__file__, line=7, function="entry")
        assert call_site(frame) == f"{clean_path(samples.__file__)} : 7"

    @pytest.mark.parametrize("op", ["import", "exec"])
    def test_include_operation(self, op):
        frame = StackFrame(file=samples.__file__, line=7, function=op)
        assert call_site(frame) == f"{op} {clean_path(samples.__file__)}"


class TestQualifier:
    def test_instance_method(self):
        assert qualifier(method_frame()) == "Widget.explode"

    def test_static_call(self):
        frame = method_frame(function="build", call_type=CallType.STATIC)
        assert qualifier(frame) == "Widget::build"

    def test_function(self):
        assert qualifier(StackFrame(function="entry")) == "entry"

    def test_nothing(self):
        assert qualifier(StackFrame(file="x.py", line=1)) is None


class TestArgumentLabels:
    def test_names_from_resolver(self):
        frame = method_frame()
        assert argument_labels(frame, FixedResolver(["amount", "label"])) == [
            "amount",
            "label",
        ]

    def test_positional_fallback_for_missing_names(self):
        frame = StackFrame(function="f", args=(1, 2, 3))
        assert argument_labels(frame, FixedResolver(["a"])) == ["a", "#1", "#2"]

    @pytest.mark.parametrize("resolver", [None, FixedResolver(None), BrokenResolver()])
    def test_unresolved(self, resolver):
        frame = StackFrame(function="f", args=(1, 2))
        assert argument_labels(frame, resolver) == ["#0", "#1"]

    def test_extra_names_ignored(self):
        frame = StackFrame(function="f", args=(1,))
        assert argument_labels(frame, FixedResolver(["a", "b"])) == ["a"]


class TestSignatureResolver:
    resolver = SignatureResolver()

    def test_instance_method_drops_self(self):
        assert self.resolver.parameter_names(method_frame()) == ["amount", "label"]

    def test_classmethod(self):
        frame = method_frame(function="build", call_type=CallType.STATIC)
        assert self.resolver.parameter_names(frame) == ["size"]

    def test_staticmethod(self):
        frame = method_frame(function="helper", call_type=CallType.STATIC)
        assert self.resolver.parameter_names(frame) == ["a", "b"]

    def test_function(self):
        frame = StackFrame(function="variadic", module="tests.samples")
        assert self.resolver.parameter_names(frame) == ["first", "rest", "flag", "extra"]

    @pytest.mark.parametrize(
        "frame",
        [
            StackFrame(function="<lambda>", module="tests.samples"),
            StackFrame(function="inner", module="tests.samples"),
            StackFrame(
                function="inner",
                class_name="make_closure.<locals>",
                call_type=CallType.STATIC,
                module="tests.samples",
            ),
            StackFrame(function="entry", module="no_such_module_here"),
            StackFrame(function="entry"),
            StackFrame(file="x.py", line=1),
        ],
    )
    def test_unresolvable(self, frame):
        assert self.resolver.parameter_names(frame) is None


class TestRenderFrame:
    def test_frame_without_args(self):
        soup = render(StackFrame(function="entry"))
        entry = soup.find("li", class_="frame")
        assert entry is not None
        assert soup.find("span", class_="call-site").text == INTERNAL_CODE
        assert soup.find("span", class_="function").text == "entry"
        assert "()" in soup.find("div", class_="frame-head").text
        assert soup.find("input") is None
        assert soup.find("div", class_="args") is None
        assert soup.find("div", class_="source") is None

    def test_frame_with_args(self):
        soup = render(method_frame(), SignatureResolver(), index=2)
        head = soup.find("div", class_="frame-head")
        assert head.find("span", class_="function").text == "Widget.explode"
        label = head.find("label", class_="args-label")
        assert label.text == "arguments"
        assert label["for"] == "pidargs2"
        toggle = soup.find("input", class_="args-toggle")
        assert toggle["id"] == "pidargs2"
        assert toggle["type"] == "checkbox"
        args = soup.find("div", class_="args")
        assert [c.text for c in args.find_all("code")] == ["amount", "label"]
        assert [p.text for p in args.find_all("pre")] == ["3", "x"]

    def test_args_without_resolver(self):
        soup = render(method_frame())
        args = soup.find("div", class_="args")
        assert [c.text for c in args.find_all("code")] == ["#0", "#1"]

    def test_argument_values_escaped(self):
        soup = render(StackFrame(function="f", args=("<script>",)))
        assert "<script>" not in str(soup.find("div", class_="args").find("pre"))
        assert soup.find("script") is None

    def test_method_frame_has_excerpt(self):
        soup = render(method_frame())
        source = soup.find("div", class_="source")
        assert source is not None
        assert source.find("pre", class_="excerpt") is not None
        highlight = source.find("span", class_="highlight")
        assert "raise ValueError" in highlight.text

    def test_function_frame_has_no_excerpt(self):
        frame = StackFrame(file=samples.__file__, line=3, function="entry")
        assert render(frame).find("div", class_="source") is None

    def test_unreadable_method_frame_has_no_excerpt(self):
        soup = render(method_frame(file="/nonexistent/mod.py"))
        assert soup.find("div", class_="source") is None

    def test_excerpt_failure_is_contained(self, monkeypatch):
        from faultpage import frames

        def broken(*args):
            raise RuntimeError("excerpt exploded")

        monkeypatch.setattr(frames, "highlight_file", broken)
        soup = render(method_frame())
        assert soup.find("div", class_="source") is None
        assert soup.find("span", class_="function").text == "Widget.explode"

    def test_include_frame(self):
        frame = StackFrame(file=samples.__file__, line=1, function="import")
        soup = render(frame)
        assert soup.find("span", class_="call-site").text.startswith("import ")
