"""Unit tests for the instance variable guards added by Processor."""

from textwrap import dedent

from strictivars.processing.processor import Processor


def guarded(name: str, namespace: str = "::StrictIvars") -> str:
    return f"(defined?({name}) ? {name} : (::Kernel.raise({namespace}::NameError.new(self, :{name}))))"


def process(source: str, **kwargs) -> str:
    return Processor.call(dedent(source), **kwargs)


# --- Tests ---


def test_basic():
    processed = process("""\
        def foo
          @foo
        end
    """)
    assert processed == dedent(f"""\
        def foo
          {guarded("@foo")}
        end
    """)


def test_untouched_code_is_identical():
    source = dedent("""\
        class Greeter
          def greet(name)
            x = name.upcase
            puts "hello #{x}"
          end
        end
    """)
    assert Processor.call(source) == source


def test_multiple_reads_only_first_guarded():
    processed = process("""\
        def foo
          @foo
          @foo
        end
    """)
    assert processed == dedent(f"""\
        def foo
          {guarded("@foo")}
          @foo
        end
    """)


def test_defined():
    processed = process("""\
        def foo
          return @foo if defined?(@foo)
          @foo = 2
        end
    """)
    assert processed == dedent(f"""\
        def foo
          return {guarded("@foo")} if defined?(@foo)
          @foo = 2
        end
    """)


def test_defined_does_not_validate():
    """The operand of defined? is skipped entirely, so the next bare read is still the first one."""
    processed = process("""\
        defined?(@a)
        @a
        @a
    """)
    assert processed == dedent(f"""\
        defined?(@a)
        {guarded("@a")}
        @a
    """)


def test_defined_with_a_non_ivar():
    source = dedent("""\
        def foo
          return true if defined?(SomeConst)
        end
    """)
    assert Processor.call(source) == source


def test_defined_with_ivar_receiver_is_guarded():
    processed = process("""\
        defined?(@a.foo)
    """)
    assert processed == f"defined?({guarded('@a')}.foo)\n"


def test_modifier_conditional():
    processed = process("""\
        def foo
          bar if @foo
        end
    """)
    assert processed == dedent(f"""\
        def foo
          bar if {guarded("@foo")}
        end
    """)


def test_modifier_condition_validates_body():
    processed = process("""\
        @a.call if @a
    """)
    assert processed == f"@a.call if {guarded('@a')}\n"


def test_if_conditional():
    processed = process("""\
        def foo
          @a

          if @b
            @a
            @b
            @c
          else
            @a
            @b
            @c
          end

          @a
          @b
          @c
        end
    """)
    assert processed == dedent(f"""\
        def foo
          {guarded("@a")}

          if {guarded("@b")}
            @a
            @b
            {guarded("@c")}
          else
            @a
            @b
            {guarded("@c")}
          end

          @a
          @b
          {guarded("@c")}
        end
    """)


def test_branch_knowledge_does_not_leak():
    processed = process("""\
        if @b
          @a
          @a
        else
          @a
          @a
        end
        @a
        @a
    """)
    assert processed == dedent(f"""\
        if {guarded("@b")}
          {guarded("@a")}
          @a
        else
          {guarded("@a")}
          @a
        end
        {guarded("@a")}
        @a
    """)


def test_validation_before_branch_persists():
    processed = process("""\
        @a
        if @b
          @a
        end
    """)
    assert processed == dedent(f"""\
        {guarded("@a")}
        if {guarded("@b")}
          @a
        end
    """)


def test_elsif_chain():
    processed = process("""\
        if @a
          @b
        elsif @c
          @b
        else
          @b
        end
        @c
    """)
    assert processed == dedent(f"""\
        if {guarded("@a")}
          {guarded("@b")}
        elsif {guarded("@c")}
          {guarded("@b")}
        else
          {guarded("@b")}
        end
        {guarded("@c")}
    """)


def test_unless_else():
    processed = process("""\
        unless @a
          @b
        else
          @b
        end
        @b
    """)
    assert processed == dedent(f"""\
        unless {guarded("@a")}
          {guarded("@b")}
        else
          {guarded("@b")}
        end
        {guarded("@b")}
    """)


def test_ternary():
    processed = process("""\
        @a ? @b : @b
    """)
    assert processed == f"{guarded('@a')} ? {guarded('@b')} : {guarded('@b')}\n"


def test_case():
    processed = process("""\
        @a

        case @b
        when @c
          @a
          @b
          @c
          @d
        else
          @a
          @b
          @c
          @d
        end

        @a
        @b
        @c
        @d
    """)
    assert processed == dedent(f"""\
        {guarded("@a")}

        case {guarded("@b")}
        when {guarded("@c")}
          @a
          @b
          @c
          {guarded("@d")}
        else
          @a
          @b
          {guarded("@c")}
          {guarded("@d")}
        end

        @a
        @b
        {guarded("@c")}
        {guarded("@d")}
    """)


def test_case_in():
    processed = process("""\
        case @a
        in Integer
          @a
          @b
        end
        @b
    """)
    assert processed == dedent(f"""\
        case {guarded("@a")}
        in Integer
          @a
          {guarded("@b")}
        end
        {guarded("@b")}
    """)


def test_open_method_definition():
    processed = process("""\
        def foo
          @a
          @a
    """)
    assert processed == dedent(f"""\
        def foo
          {guarded("@a")}
          @a
    """)


def test_class_isolation():
    processed = process("""\
        @a
        @a

        class Foo
          @a
          @a
        end
    """)
    assert processed == dedent(f"""\
        {guarded("@a")}
        @a

        class Foo
          {guarded("@a")}
          @a
        end
    """)


def test_class_body_does_not_see_outer_validation_nor_leak_back():
    processed = process("""\
        @a
        class Foo
          @a
        end
        @a
    """)
    assert processed == dedent(f"""\
        {guarded("@a")}
        class Foo
          {guarded("@a")}
        end
        @a
    """)


def test_module_isolation():
    processed = process("""\
        @a
        @a

        module Foo
          @a
          @a
        end
    """)
    assert processed == dedent(f"""\
        {guarded("@a")}
        @a

        module Foo
          {guarded("@a")}
          @a
        end
    """)


def test_block_isolation():
    processed = process("""\
        @a
        @a

        anything do
          @a
          @a
        end
    """)
    assert processed == dedent(f"""\
        {guarded("@a")}
        @a

        anything do
          {guarded("@a")}
          @a
        end
    """)


def test_brace_block_and_lambda_isolation():
    processed = process("""\
        @a
        items.each { @a }
        handler = -> { @a }
    """)
    assert processed == dedent(f"""\
        {guarded("@a")}
        items.each {{ {guarded("@a")} }}
        handler = -> {{ {guarded("@a")} }}
    """)


def test_singleton_class_isolation():
    processed = process("""\
        @a
        @a

        class << self
          @a
          @a
        end
    """)
    assert processed == dedent(f"""\
        {guarded("@a")}
        @a

        class << self
          {guarded("@a")}
          @a
        end
    """)


def test_singleton_method_isolation():
    processed = process("""\
        @a
        def self.foo
          @a
        end
    """)
    assert processed == dedent(f"""\
        {guarded("@a")}
        def self.foo
          {guarded("@a")}
        end
    """)


def test_shorthand_string_interpolation():
    processed = process("""\
        def foo
          "hello #@name"
        end
    """)
    assert processed == dedent(f"""\
        def foo
          "hello #{{{guarded("@name")}}}"
        end
    """)


def test_shorthand_interpolation_after_validation_is_kept():
    processed = process("""\
        @name
        "hello #@name"
    """)
    assert processed == dedent(f"""\
        {guarded("@name")}
        "hello #@name"
    """)


def test_braced_interpolation():
    processed = process("""\
        "hello #{@name}"
    """)
    assert processed == '"hello #{' + guarded("@name") + '}"\n'


def test_escaped_shorthand_interpolation():
    source = dedent(r"""
        def foo
          @name ||= "world"
          "hello \#@name"
        end
    """)
    assert Processor.call(source) == source


def test_assignment_is_not_guarded_and_does_not_validate():
    processed = process("""\
        @a = 1
        @a
    """)
    assert processed == dedent(f"""\
        @a = 1
        {guarded("@a")}
    """)


def test_operator_assignment_target():
    processed = process("""\
        @count += @step
        @count
    """)
    assert processed == dedent(f"""\
        @count += {guarded("@step")}
        {guarded("@count")}
    """)


def test_multiple_assignment_targets():
    processed = process("""\
        @a, @b = @b, @a
    """)
    assert processed == f"@a, @b = {guarded('@b')}, {guarded('@a')}\n"


def test_attribute_assignment_guards_receiver():
    processed = process("""\
        @a.b = 1
    """)
    assert processed == f"{guarded('@a')}.b = 1\n"


def test_for_loop_variable():
    processed = process("""\
        for @item in @items
          @item
        end
    """)
    assert processed == dedent(f"""\
        for @item in {guarded("@items")}
          {guarded("@item")}
        end
    """)


def test_rescue_variable():
    processed = process("""\
        begin
          work
        rescue => @error
          @error
        end
    """)
    assert processed == dedent(f"""\
        begin
          work
        rescue => @error
          {guarded("@error")}
        end
    """)


def test_custom_namespace():
    processed = process("""\
        @a
    """, runtime_namespace="::Guards")
    assert processed == guarded("@a", namespace="::Guards") + "\n"


def test_multibyte_offsets():
    processed = process("""\
        "héllo wörld" + @a
    """)
    assert processed == f'"héllo wörld" + {guarded("@a")}\n'


def test_processor_can_be_reused():
    processor = Processor()
    assert processor.process("@a\n") == guarded("@a") + "\n"
    assert processor.process("@a\n") == guarded("@a") + "\n"


def test_long_operator_chain():
    terms = " + ".join(["1"] * 1000)
    processed = process(f"""\
        x = {terms}
        @a
    """)
    assert processed == f"x = {terms}\n{guarded('@a')}\n"


def test_long_chain_of_reads():
    processed = Processor.call(" + ".join(["@a"] * 1000) + "\n")
    assert processed == guarded("@a") + " + @a" * 999 + "\n"


def test_source_survives_in_output_order():
    source = dedent("""\
        class Account
          def balance
            if @open
              "#@owner: #{@total}"
            else
              @total ||= 0
            end
          end

          def audit(kind)
            case kind
            when :full then @log.instance_eval("@entries")
            else defined?(@log) && @log
            end
            @a, @b = @b, @a
          end
        end
    """)
    processed = Processor.call(source)
    assert processed != source
    remaining = iter(processed)
    assert all(char in remaining for char in source)
