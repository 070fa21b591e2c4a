"""Source emitter tests."""

from wordlang import emit, parse

FACTORIAL = """\
let fact be function n
    if n less than 2 then
        return 1
    endif
    return n multiply call fact n subtract 1 end
end function
print call fact 5 end
"""


def test_canonical_output():
    assert emit(parse(FACTORIAL)) == (
        "let fact be function n\n"
        "    if n less 2 then\n"
        "        return 1\n"
        "    endif\n"
        "    return n multiply call fact n subtract 1 end\n"
        "end function\n"
        "print call fact 5 end\n"
    )


def test_normalizes_aliases_and_list_forms():
    source = "let xs be list 1 2 end\nprint 3 sub 1 greater than 1 and is defined xs"
    assert emit(parse(source)) == (
        "let xs be list(1, 2)\n"
        "print 3 subtract 1 greater 1 and is defined xs\n"
    )


def test_emitted_source_reparses_to_same_output():
    source = """\
# pragma strict-math
let name be input "Name? "
foreach x in list(1, 2.5, "s") do
    if x equals 1 then
        print convert to string x
    elseif not x then
        print get item at index 0 from list(x)
    else
        input
    endif
endforeach
let i be 0
while i less or equal 2 do
    let i be i add 1
endwhile
let f be function a b
    return function
        return a divide b
    end function
end function
exit call call f 4 2 end end
"""
    once = emit(parse(source))
    assert emit(parse(once)) == once
    assert once.startswith("# pragma strict-math\n")


def test_empty_program():
    assert emit(parse("")) == ""


def test_operator_first_trees_survive_round_trip():
    once = emit(parse("print multiply add 1 2 3\nprint 1 add add 2 3\n"))
    assert once == "print multiply add 1 2 3\nprint add 1 add 2 3\n"
    assert emit(parse(once)) == once
