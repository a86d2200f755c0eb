# This library is free software; you can redistribute it and/or modify
# it under the terms of the GNU Lesser General Public License as
# published by the Free Software Foundation; either version 3 of the
# License, or (at your option) any later version.
#
# This library is distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# Lesser General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public
# License along with this library; if not, see
# <http://www.gnu.org/licenses/>.


"""
Utility script and module for inspecting binary java class files,
in the manner of the javap tool.

:license: LGPL v.3
"""


import sys

from argparse import ArgumentParser
from json import dump

from . import ClassfileError, unpack_classfile
from .opcodes import instruction_text


__all__ = (
    "SHOW_HEADER", "SHOW_PUBLIC",
    "SHOW_PACKAGE", "SHOW_PRIVATE",
    "main", "cli", "add_classinfo_optgroup",
    "cli_json_class", "cli_print_class",
    "cli_print_classinfo", "cli_simplify_classinfo",
    "cli_simplify_field", "cli_simplify_method",
)


SHOW_HEADER = 0
SHOW_PUBLIC = 1
SHOW_PACKAGE = 3
SHOW_PRIVATE = 7


def should_show(options, member):
    """
    whether to show a member by its access flags and the show option
    """

    show = options.show
    if show == SHOW_PUBLIC:
        return member.is_public()
    elif show == SHOW_PACKAGE:
        return member.is_public() or member.is_protected()
    else:
        return show == SHOW_PRIVATE


def print_field(options, field):

    if options.indent:
        print("   ", end="")

    print("%s;" % field.pretty_descriptor())

    if options.sigs:
        print("  Signature:", field.get_descriptor())

    if options.verbose:
        print()


def print_code(options, method, code):

    print("  Code:")

    if options.verbose:
        # non-static methods have an implicit "this" argument that's
        # not in the descriptor
        argsc = len(method.get_arg_type_descriptors())
        if not method.is_static():
            argsc += 1

        print("   Stack=%i, Locals=%i, Args_size=%i" %
              (code.max_stack, code.max_locals, argsc))

    for offset, inst in code.disassemble():
        text = instruction_text(inst, offset).replace("\n", "\n\t")
        print("   %i:\t%s" % (offset, text))

    exps = code.exceptions
    if exps:
        print("  Exception table:")
        print("   from\tto\ttarget\ttype")
        for e in exps:
            ctype = e.pretty_catch_type()
            print("  % 4i\t% 4i\t% 4i\t%s" %
                  (e.start_pc, e.end_pc, e.handler_pc, ctype))


def print_method(options, method):
    if options.indent:
        print("   ", end="")

    print("%s;" % method.pretty_descriptor())

    if options.sigs:
        print("  Signature:", method.get_descriptor())

    code = method.get_code()
    if options.disassemble and code:
        print_code(options, method, code)

    if options.verbose:
        if method.is_synthetic():
            print("  Synthetic: true")

        if method.is_bridge():
            print("  Bridge: true")

        if method.is_varargs():
            print("  Varargs: true")

    if options.lines and code:
        lnt = code.get_linenumbertable()
        if lnt:
            print("  LineNumberTable:")
            for o, l in lnt:
                print("   line %i: %i" % (l, o))

    if options.verbose:
        exps = tuple(method.pretty_exceptions())
        if exps:
            print("  Exceptions:")
            for e in exps:
                print("   throws", e)

        print()


def cli_print_classinfo(options, info):

    sourcefile = info.get_sourcefile()
    if sourcefile:
        print("Compiled from \"%s\"" % sourcefile)

    print(info.pretty_descriptor(), end="")

    if options.verbose or options.show == SHOW_HEADER:
        print()
        if sourcefile:
            print("  SourceFile: \"%s\"" % sourcefile)

        signature = info.get_signature()
        if signature:
            print("  Signature:", signature)

        major, minor = info.get_version()
        print("  minor version:", minor)
        print("  major version:", major)
        print("  Platform:", info.get_platform() or "unknown")

    if options.constpool:
        print()
        print("  Constants pool:")

        # pretty_constants skips the unusable slots, which would be the
        # second half of a long or double value
        for i, t, v in info.cpool.pretty_constants():
            print("const #%i = %s\t%s;" % (i, t, v))
        print()

    if options.show == SHOW_HEADER:
        return

    print("{")

    for field in info.fields:
        if should_show(options, field):
            print_field(options, field)

    for method in info.methods:
        if should_show(options, method):
            print_method(options, method)

    print("}\n")


def cli_print_class(options, classfile):
    info = unpack_classfile(classfile)
    cli_print_classinfo(options, info)


def cli_simplify_field(field, data=None):
    if data is None:
        data = dict()

    data["name"] = field.get_name()
    data["type"] = field.pretty_type()
    data["access_flags"] = tuple(field.pretty_access_flags())

    ifonly(data, "signature", field.get_signature())

    return data


def cli_simplify_method(method, data=None):
    if data is None:
        data = dict()

    data["name"] = method.get_name()
    data["type"] = method.pretty_type()
    data["access_flags"] = tuple(method.pretty_access_flags())
    data["arg_types"] = tuple(method.pretty_arg_types())

    ifonly(data, "signature", method.get_signature())
    ifonly(data, "exceptions", tuple(method.pretty_exceptions()))

    code = method.get_code()
    if code:
        data["code"] = tuple(instruction_text(inst, offset)
                             for offset, inst in code.disassemble())

    return data


def cli_simplify_classinfo(options, info, data=None):
    if data is None:
        data = dict()

    data["name"] = info.pretty_this()
    data["extends"] = info.pretty_super()
    data["implements"] = tuple(info.pretty_interfaces())
    data["source_file"] = info.get_sourcefile()

    ifonly(data, "signature", info.get_signature())

    data["version"] = info.get_version()
    data["platform"] = info.get_platform()

    if options.constpool:
        data["constants_pool"] = tuple(info.cpool.pretty_constants())

    data["fields"] = [cli_simplify_field(f) for f in info.fields
                      if should_show(options, f)]
    data["methods"] = [cli_simplify_method(m) for m in info.methods
                       if should_show(options, m)]

    return data


def ifonly(data, key, val):
    """
    utility function to set data[key] to val, but only if val has a
    truthy value
    """

    if val:
        data[key] = val


def cli_json_class(options, classfile):
    info = unpack_classfile(classfile)
    data = cli_simplify_classinfo(options, info)
    dump(data, sys.stdout, sort_keys=True, indent=2)
    print()


def cli(options):
    if options.verbose:
        # verbose also sets all of the following options
        options.lines = True
        options.disassemble = True
        options.sigs = True
        options.constpool = True

    # mimic the indenting javap does when the output is terse
    options.indent = not (options.lines or
                          options.disassemble or
                          options.sigs)

    style = cli_print_class
    if options.json:
        style = cli_json_class

    result = 0
    for f in options.classfile:
        try:
            style(options, f)
        except (ClassfileError, IOError) as exc:
            print("%s: %s" % (f, exc), file=sys.stderr)
            result = 1

    return result


def add_classinfo_optgroup(parser):
    g = parser.add_argument_group("Class Info Options")

    g.add_argument("--header", dest="show",
                   action="store_const", default=SHOW_PUBLIC,
                   const=SHOW_HEADER,
                   help="show just the class header, no members")

    g.add_argument("--public", dest="show",
                   action="store_const", const=SHOW_PUBLIC,
                   help="show only public members")

    g.add_argument("--package", dest="show",
                   action="store_const", const=SHOW_PACKAGE,
                   help="show public and protected members")

    g.add_argument("--private", dest="show",
                   action="store_const", const=SHOW_PRIVATE,
                   help="show all members")

    g.add_argument("-l", dest="lines", action="store_true",
                   help="show the line number table")

    g.add_argument("-c", dest="disassemble", action="store_true",
                   help="disassemble method code")

    g.add_argument("-s", dest="sigs", action="store_true",
                   help="show internal type signatures")

    g.add_argument("-p", dest="constpool", action="store_true",
                   help="show the constants pool")

    g.add_argument("--verbose", dest="verbose", action="store_true",
                   help="sets -lcsp options and shows stack bounds")


def create_optparser(progname):
    parser = ArgumentParser(prog=progname)
    parser.add_argument("classfile", nargs="+",
                        help="Java class file(s) to inspect")
    parser.add_argument("--json", action="store_true", default=False,
                        help="output JSON")

    add_classinfo_optgroup(parser)

    return parser


def main(args=sys.argv):
    parser = create_optparser(args[0])
    return cli(parser.parse_args(args[1:]))


if __name__ == "__main__":
    sys.exit(main())


#
# The end.
