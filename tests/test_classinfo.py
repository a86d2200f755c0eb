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
unit tests for unpacking and packing whole classes with jvmclass

license: LGPL v.3
"""


from io import BytesIO
from struct import pack as spack
from unittest import TestCase

import jvmclass as jc
import jvmclass.opcodes as op

from jvmclass.opcodes import Instruction
from jvmclass.pack import pack, UnpackException

from . import (
    build_class, build_code, build_member,
    get_class_data, get_class_fn, load)


class Reader(object):
    """
    a stream which remembers how much was read from it, and which
    cannot be closed
    """

    def __init__(self, data):
        self.data = BytesIO(data)
        self.consumed = 0


    def read(self, count):
        chunk = self.data.read(count)
        self.consumed += len(chunk)
        return chunk


class DummyTest(TestCase):

    def test_is_class_file(self):
        fn = get_class_fn("Dummy")
        self.assertTrue(jc.is_class_file(fn))
        self.assertFalse(jc.is_class_file(__file__))


    def test_is_class(self):
        self.assertTrue(jc.is_class(get_class_data("Dummy")))
        self.assertFalse(jc.is_class(b"PK\x03\x04"))
        self.assertFalse(jc.is_class(b"\xca\xfe"))


    def test_classinfo(self):
        ci = load("Dummy")

        self.assertEqual(type(ci), jc.JavaClassInfo)

        self.assertEqual(ci.get_this(), "Dummy")
        self.assertEqual(ci.pretty_this(), "Dummy")
        self.assertEqual(ci.get_super(), "java/lang/Object")
        self.assertEqual(ci.pretty_super(), "java.lang.Object")
        self.assertEqual(ci.get_interfaces(), ())
        self.assertEqual(ci.get_sourcefile(), "Dummy.java")
        self.assertEqual(ci.get_signature(), None)

        self.assertEqual(ci.get_version(), (55, 0))
        self.assertEqual(ci.get_platform(), "11")

        self.assertTrue(ci.is_public())
        self.assertTrue(ci.is_super())
        self.assertFalse(ci.is_final())
        self.assertFalse(ci.is_interface())
        self.assertFalse(ci.is_abstract())
        self.assertFalse(ci.is_enum())

        self.assertEqual(ci.pretty_descriptor(),
                         "public class Dummy extends java.lang.Object")

        self.assertEqual(ci.fields, ())
        self.assertEqual(ci.attribs.names(), ("SourceFile",))


    def test_constructor(self):
        ci = load("Dummy")

        self.assertEqual(len(ci.methods), 1)
        meth = ci.methods[0]

        self.assertTrue(meth.is_method)
        self.assertEqual(meth.get_name(), "<init>")
        self.assertEqual(meth.get_descriptor(), "()V")
        self.assertEqual(meth.pretty_descriptor(), "public <init>()")
        self.assertEqual(meth.get_exceptions(), ())

        code = meth.get_code()
        self.assertEqual(code.max_stack, 1)
        self.assertEqual(code.max_locals, 1)
        self.assertEqual(code.code, b"\x2a\xb7\x00\x01\xb1")
        self.assertEqual(code.exceptions, ())

        self.assertEqual(code.disassemble(), (
            (0, Instruction(op.OP_aload_0)),
            (1, Instruction(op.OP_invokespecial, (1,))),
            (4, Instruction(op.OP_return)),
        ))

        self.assertEqual(code.attribs.records,
                         ((7, b"\x00\x01\x00\x00\x00\x01"),))
        self.assertEqual(code.get_linenumbertable(), ((0, 1),))


    def test_round_trip(self):
        data = get_class_data("Dummy")
        ci = jc.unpack_class(data)

        self.assertEqual(jc.pack_class(ci), data)
        self.assertEqual(jc.unpack_class(jc.pack_class(ci)), ci)


    def test_stream(self):
        data = get_class_data("Dummy")
        self.assertEqual(jc.unpack_class(BytesIO(data)),
                         jc.unpack_class(data))


    def test_truncated(self):
        data = get_class_data("Dummy")

        for cut in (3, 9, 40, len(data) - 1):
            self.assertRaises(jc.StructuralError,
                              lambda: jc.unpack_class(data[:cut]))

        self.assertRaises(UnpackException,
                          lambda: jc.unpack_class(data[:-1]))


class IntBoxTest(TestCase):

    def test_field(self):
        ci = load("IntBox")

        self.assertEqual(len(ci.fields), 1)
        field = ci.get_field_by_name("value")

        self.assertFalse(field.is_method)
        self.assertTrue(field.is_private())
        self.assertEqual(field.get_descriptor(), "I")
        self.assertEqual(field.pretty_type(), "int")
        self.assertEqual(field.pretty_descriptor(), "private int value")

        self.assertEqual(ci.get_field_by_name("missing"), None)


    def test_methods(self):
        ci = load("IntBox")

        init, getter = ci.methods

        self.assertEqual(init.pretty_descriptor(), "public <init>(int)")
        self.assertEqual(init.get_arg_type_descriptors(), ("I",))
        self.assertEqual(getter.pretty_descriptor(), "public int getValue()")

        code = init.get_code()
        self.assertEqual(code.max_stack, 2)
        self.assertEqual(code.max_locals, 2)
        self.assertEqual([i.name for _o, i in code.disassemble()],
                         ["aload_0", "invokespecial", "aload_0",
                          "iload_1", "putfield", "return"])
        self.assertEqual(code.get_linenumbertable(),
                         ((0, 3), (4, 4), (9, 5)))

        found = tuple(ci.get_methods_by_name("getValue"))
        self.assertEqual(found, (getter,))

        code = getter.get_code()
        self.assertEqual(code.disassemble(), (
            (0, Instruction(op.OP_aload_0)),
            (1, Instruction(op.OP_getfield, (2,))),
            (4, Instruction(op.OP_ireturn)),
        ))
        self.assertEqual(code.get_linenumbertable(), ((0, 6),))


    def test_deref(self):
        ci = load("IntBox")

        self.assertEqual(ci.deref_const(2), ("IntBox", ("value", "I")))
        self.assertEqual(ci.cpool.pretty_deref_const(2), "IntBox.value:int")


    def test_round_trip(self):
        data = get_class_data("IntBox")
        ci = jc.unpack_class(data)

        self.assertEqual(jc.pack_class(ci), data)


class HelloWorldTest(TestCase):

    def test_main(self):
        ci = load("HelloWorld")

        self.assertEqual(ci.get_sourcefile(), "HelloWorld.java")
        self.assertEqual(ci.pretty_this(), "HelloWorld")

        main = ci.methods[1]
        self.assertTrue(main.is_static())
        self.assertEqual(main.pretty_descriptor(),
                         "public static void main(java.lang.String[])")

        code = main.get_code()
        self.assertEqual(code.max_stack, 2)
        self.assertEqual(code.disassemble(), (
            (0, Instruction(op.OP_getstatic, (2,))),
            (3, Instruction(op.OP_ldc, (3,))),
            (5, Instruction(op.OP_invokevirtual, (4,))),
            (8, Instruction(op.OP_return)),
        ))
        offset, inst = code.disassemble()[1]
        self.assertEqual(op.instruction_text(inst, offset),
                         "ldc".ljust(13) + " #3")


    def test_deref(self):
        cpool = load("HelloWorld").cpool

        self.assertEqual(cpool.get_const(3), (jc.CONST_String, 17))
        self.assertEqual(cpool.deref_const(3), "Hello, World!")
        self.assertEqual(cpool.pretty_deref_const(2),
                         "java.lang.System.out:java.io.PrintStream")
        self.assertEqual(cpool.pretty_deref_const(4),
                         "java.io.PrintStream.println(java.lang.String)"
                         ":void")


    def test_round_trip(self):
        data = get_class_data("HelloWorld")
        ci = jc.unpack_class(data)

        self.assertEqual(jc.pack_class(ci), data)


class MagicTest(TestCase):

    def test_bad_magic(self):
        data = b"\xca\xfe\xba\xbf" + get_class_data("Dummy")[4:]

        try:
            jc.unpack_class(data)
        except jc.ClassUnpackException as cue:
            self.assertTrue(isinstance(cue, jc.StructuralError))
            self.assertEqual(cue.magic, (0xca, 0xfe, 0xba, 0xbf))
            self.assertTrue("CAFEBABF" in str(cue))
        else:
            self.fail("unpacked a class with the wrong magic")


    def test_nothing_more_read(self):
        reader = Reader(b"PK\x03\x04" + b"\x00" * 64)

        self.assertRaises(jc.ClassUnpackException,
                          lambda: jc.unpack_class(reader))
        self.assertEqual(reader.consumed, 4)


    def test_magic_given(self):
        data = get_class_data("Dummy")

        reader = Reader(data)
        magic = reader.read(4)

        self.assertEqual(jc.unpack_class(reader, magic=magic),
                         jc.unpack_class(data))


class PackRangeTest(TestCase):

    def check_nothing_written(self, ci):
        out = BytesIO()
        self.assertRaises(jc.RangeError, lambda: ci.pack(pack(out)))
        self.assertEqual(out.getvalue(), b"")

        self.assertRaises(jc.RangeError, lambda: jc.pack_class(ci))


    def test_this_class(self):
        ci = load("Dummy")

        ci.this_ref = 0
        self.check_nothing_written(ci)

        ci.this_ref = 70000
        self.check_nothing_written(ci)


    def test_super_class(self):
        ci = load("Dummy")

        # java/lang/Object itself has no super class
        ci.super_ref = 0
        data = jc.pack_class(ci)
        self.assertEqual(jc.unpack_class(data).get_super(), "")

        ci.super_ref = -1
        self.check_nothing_written(ci)


    def test_interfaces(self):
        ci = load("Dummy")

        ci.interfaces = (2, 0)
        self.check_nothing_written(ci)


    def test_member_refs(self):
        ci = load("Dummy")
        ci.methods[0].name_ref = 0
        self.check_nothing_written(ci)


    def test_attribute_name(self):
        ci = load("Dummy")
        ci.attribs = jc.JavaAttributes(ci.cpool, [(0x10000, b"")])
        self.check_nothing_written(ci)


    def test_catch_type(self):
        ci = load("Dummy")
        code = ci.methods[0].get_code()

        handler = jc.JavaExceptionInfo(code)
        handler.end_pc = 4
        handler.handler_pc = 4

        # zero catches anything
        code.exceptions = (handler,)
        ci.methods[0].attribs = jc.JavaAttributes(
            ci.cpool, [(6, code.to_bytes())])

        ci2 = jc.unpack_class(jc.pack_class(ci))
        self.assertEqual(ci2, ci)

        code = ci2.methods[0].get_code()
        handler = code.exceptions[0]
        self.assertEqual(handler.info(), (0, 4, 4, 0))
        self.assertEqual(handler.get_catch_type(), None)
        self.assertEqual(handler.pretty_catch_type(), "any")

        handler.catch_type_ref = 70000
        self.assertRaises(jc.RangeError, lambda: code.to_bytes())


class AttributeTest(TestCase):

    def setUp(self):
        self.cpool = jc.JavaConstantPool([
            (jc.CONST_Utf8, "Thing"),         # 1
            (jc.CONST_Class, 1),              # 2
            (jc.CONST_Utf8, "SourceFile"),    # 3
            (jc.CONST_Utf8, "Custom"),        # 4
            (jc.CONST_Utf8, "Code"),          # 5
            (jc.CONST_Utf8, "Signature"),     # 6
            (jc.CONST_Integer, 7),            # 7
        ])


    def test_opaque(self):
        attribs = [
            (4, b"\xde\xad"),
            (3, b"\x00\x01"),
            (4, b"\xbe\xef"),
            (999, b"anything"),
        ]
        ci = build_class(self.cpool, 2, attribs=attribs)

        ci2 = jc.unpack_class(jc.pack_class(ci))
        self.assertEqual(ci2, ci)
        self.assertEqual(ci2.attribs.records, tuple(attribs))

        # the unresolvable name only matters when it is looked at
        self.assertEqual(ci2.get_this(), "Thing")
        self.assertEqual(ci2.get_sourcefile(), "Thing")
        self.assertRaises(jc.ResolutionError, lambda: ci2.attribs.names())

        attribs = jc.JavaAttributes(self.cpool, attribs[:3])
        self.assertEqual(attribs.names(), ("Custom", "SourceFile", "Custom"))
        self.assertEqual(tuple(attribs.get_all("Custom")),
                         (b"\xde\xad", b"\xbe\xef"))
        self.assertEqual(attribs.get("Custom"), b"\xde\xad")
        self.assertEqual(attribs.get("Nope"), None)


    def test_unresolvable_name_first(self):
        code = build_code(self.cpool, [Instruction(op.OP_return)])

        # names that aren't Utf8 entries sit ahead of the ones asked for
        method = build_member(self.cpool, 1, 1,
                              attribs=[(999, b"x"), (7, b"y"),
                                       (5, code.to_bytes())])
        self.assertEqual(method.get_code(), code)

        ci = build_class(self.cpool, 2, methods=[method],
                         attribs=[(999, b"x"), (3, b"\x00\x01")])
        ci = jc.unpack_class(jc.pack_class(ci))

        self.assertEqual(ci.get_sourcefile(), "Thing")
        self.assertEqual(ci.methods[0].get_code(), code)
        self.assertEqual(ci.attribs.get("Custom"), None)
        self.assertRaises(jc.ResolutionError, lambda: ci.attribs.names())


    def test_code_reassigned(self):
        code = build_code(self.cpool, [Instruction(op.OP_return)])
        self.assertEqual(code.disassemble(), ((0, Instruction(op.OP_return)),))

        code.code = b"\x00"
        self.assertEqual(code.disassemble(), ((0, Instruction(op.OP_nop)),))


    def test_bad_descriptor(self):
        cpool = jc.JavaConstantPool(self.cpool.consts + (
            (jc.CONST_Utf8, "(Q)V"),                  # 8
            (jc.CONST_Utf8, "Ljava/lang/String"),     # 9
            (jc.CONST_Utf8, "(I"),                    # 10
            (jc.CONST_Utf8, ""),                      # 11
        ))

        method = build_member(cpool, 1, 8)
        self.assertEqual(method.get_type_descriptor(), "V")
        self.assertRaises(jc.DescriptorError,
                          lambda: method.pretty_descriptor())

        field = build_member(cpool, 1, 9, is_method=False)
        try:
            field.pretty_type()
        except jc.DescriptorError as de:
            self.assertTrue(isinstance(de, jc.ClassfileError))
            self.assertEqual(de.descriptor, "Ljava/lang/String")
        else:
            self.fail("read a class type with no closing semicolon")

        for ref in (10, 11):
            method = build_member(cpool, 1, ref)
            self.assertRaises(jc.DescriptorError,
                              lambda: method.get_type_descriptor())


    def test_bad_sourcefile(self):
        method = build_member(self.cpool, 1, 1)
        ci = build_class(self.cpool, 2, methods=[method],
                         attribs=[(3, b"\x00\x01\x00")])

        ci = jc.unpack_class(jc.pack_class(ci))

        try:
            ci.get_sourcefile()
        except jc.AttributeFormatError as afe:
            self.assertTrue(isinstance(afe, jc.ResolutionError))
            self.assertEqual(afe.name, "SourceFile")
            self.assertEqual(afe.expected, 2)
            self.assertEqual(afe.actual, 3)
        else:
            self.fail("resolved a malformed SourceFile")

        # the rest of the class is unaffected
        self.assertEqual(ci.get_this(), "Thing")
        self.assertEqual(ci.methods[0].get_name(), "Thing")


    def test_wrong_sourcefile_type(self):
        ci = build_class(self.cpool, 2, attribs=[(3, b"\x00\x07")])
        self.assertRaises(jc.ResolutionError, lambda: ci.get_sourcefile())


    def test_signature(self):
        method = build_member(self.cpool, 1, 1, attribs=[(6, b"\x00\x01")])
        self.assertEqual(method.get_signature(), "Thing")


    def test_trailing_code(self):
        code = build_code(self.cpool, [Instruction(op.OP_return)])
        method = build_member(self.cpool, 1, 1,
                              attribs=[(5, code.to_bytes() + b"\x00")])

        self.assertRaises(jc.StructuralError, lambda: method.get_code())


    def test_truncated_code(self):
        code = build_code(self.cpool, [Instruction(op.OP_return)])
        method = build_member(self.cpool, 1, 1,
                              attribs=[(5, code.to_bytes()[:-1])])

        self.assertRaises(UnpackException, lambda: method.get_code())


    def test_depth(self):
        self.assertRaises(jc.StructuralError, lambda: jc.JavaCodeInfo(
            self.cpool, jc.MAX_ATTRIBUTE_DEPTH + 1))

        code = build_code(self.cpool, [Instruction(op.OP_return)])
        attribs = jc.JavaAttributes(self.cpool, [(5, code.to_bytes())],
                                    depth=jc.MAX_ATTRIBUTE_DEPTH)

        self.assertRaises(jc.StructuralError, lambda: attribs.get_code())


    def test_nested_code(self):
        inner = build_code(self.cpool, [Instruction(op.OP_return)])
        outer = build_code(self.cpool, [Instruction(op.OP_nop)],
                           attribs=[(5, inner.to_bytes())])

        method = build_member(self.cpool, 1, 1,
                              attribs=[(5, outer.to_bytes())])

        code = method.get_code()
        self.assertEqual(code, outer)
        self.assertEqual(code.attribs.get_code(), inner)
        self.assertEqual(code.attribs.get_code().attribs.depth, 2)


class BuiltClassTest(TestCase):
    """
    a class made in memory, rather than unpacked from a file
    """

    def setUp(self):
        self.cpool = jc.JavaConstantPool([
            (jc.CONST_Utf8, "ConstantValues"),          # 1
            (jc.CONST_Class, 1),                        # 2
            (jc.CONST_Utf8, "java/lang/Object"),        # 3
            (jc.CONST_Class, 3),                        # 4
            (jc.CONST_Integer, 65535),                  # 5
            (jc.CONST_Float, 0x42280000),               # 6
            (jc.CONST_Long, 42),                        # 7
            (jc.CONST_Double, 0xbff0000000000000),      # 9
            (jc.CONST_Utf8, "fourty two"),              # 11
            (jc.CONST_String, 11),                      # 12
            (jc.CONST_Utf8, "Code"),                    # 13
            (jc.CONST_Utf8, "run"),                     # 14
            (jc.CONST_Utf8, "()I"),                     # 15
            (jc.CONST_Utf8, "Exceptions"),              # 16
            (jc.CONST_Utf8, "java/io/IOException"),     # 17
            (jc.CONST_Class, 17),                       # 18
            (jc.CONST_Utf8, "LineNumberTable"),         # 19
            (jc.CONST_Utf8, "SourceFile"),              # 20
            (jc.CONST_Utf8, "ConstantValues.java"),     # 21
        ])

        self.instructions = [
            Instruction(op.OP_ldc, (5,)),
            Instruction(op.OP_istore_1),
            Instruction(op.OP_iinc, (1, -1)),
            Instruction(op.OP_iload_1),
            Instruction(op.OP_ifgt, (-4,)),
            Instruction(op.OP_iload_1),
            Instruction(op.OP_ireturn),
        ]

        code = build_code(self.cpool, self.instructions,
                          max_stack=1, max_locals=2,
                          attribs=[(19, b"\x00\x01\x00\x00\x00\x07")])

        handler = jc.JavaExceptionInfo(code)
        handler.start_pc = 0
        handler.end_pc = 10
        handler.handler_pc = 10
        handler.catch_type_ref = 18
        code.exceptions = (handler,)

        self.code = code

        method = build_member(self.cpool, 14, 15, attribs=[
            (13, code.to_bytes()),
            (16, b"\x00\x01\x00\x12"),
        ])

        self.info = build_class(self.cpool, 2, 4, methods=[method],
                                attribs=[(20, spack(">H", 21))])


    def test_constants(self):
        cpool = jc.unpack_class(jc.pack_class(self.info)).cpool

        self.assertEqual(cpool, self.cpool)
        self.assertEqual(cpool.deref_const(5), 65535)
        self.assertEqual(cpool.deref_const(6), 42.0)
        self.assertEqual(cpool.deref_const(7), 42)
        self.assertEqual(cpool.get_const(8), (None, None))
        self.assertEqual(cpool.deref_const(9), -1.0)
        self.assertEqual(cpool.deref_const(12), "fourty two")
        self.assertEqual(cpool.get_utf8(11), "fourty two")


    def test_round_trip(self):
        data = jc.pack_class(self.info)
        ci = jc.unpack_class(data)

        self.assertEqual(ci, self.info)
        self.assertEqual(jc.pack_class(ci), data)

        self.assertEqual(ci.get_this(), "ConstantValues")
        self.assertEqual(ci.get_sourcefile(), "ConstantValues.java")


    def test_code(self):
        ci = jc.unpack_class(jc.pack_class(self.info))
        method = ci.methods[0]

        self.assertEqual(method.pretty_descriptor(),
                         "public int run() throws java.io.IOException")
        self.assertEqual(method.get_exceptions(), ("java/io/IOException",))

        code = method.get_code()
        self.assertEqual(code, self.code)

        dis = code.disassemble()
        self.assertEqual([o for o, _i in dis], [0, 2, 3, 6, 7, 10, 11])
        self.assertEqual([i for _o, i in dis], self.instructions)

        offset, inst = dis[4]
        self.assertEqual(offset + inst.args[0], 3)

        handler = code.exceptions[0]
        self.assertEqual(handler.get_catch_type(), "java/io/IOException")
        self.assertEqual(handler.pretty_catch_type(),
                         "Class java.io.IOException")
        self.assertEqual(code.get_linenumbertable(), ((0, 7),))


    def test_file(self):
        import os
        import tempfile

        fd, fn = tempfile.mkstemp(suffix=".class")
        os.close(fd)

        try:
            jc.pack_classfile(self.info, fn)
            self.assertTrue(jc.is_class_file(fn))
            self.assertEqual(jc.unpack_classfile(fn), self.info)
        finally:
            os.unlink(fn)


class PlatformTest(TestCase):

    def test_platforms(self):
        self.assertEqual(jc.platform_from_version(45, 3), "1.0.2")
        self.assertEqual(jc.platform_from_version(45, 4), "1.1")
        self.assertEqual(jc.platform_from_version(52, 0), "1.8")
        self.assertEqual(jc.platform_from_version(61, 0), "17")
        self.assertEqual(jc.platform_from_version(44, 0), None)


#
# The end.
