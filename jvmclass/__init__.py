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
Java class file unpacking and packing module.

A class file unpacked with `unpack_class` is held as a tree of
`JavaClassInfo`, `JavaMemberInfo` and `JavaAttributes` instances over
a shared `JavaConstantPool`. Every reference between them is a plain
constant pool index, resolved only when asked for. `pack_class` walks
the same tree back into bytes, such that unpacking those bytes again
gives an equal tree.

Attribute payloads are kept as the opaque bytes they were read as.
The well-known ones (Code, SourceFile, Signature, LineNumberTable,
Exceptions) are only interpreted when their accessor is called.

References
----------
* https://docs.oracle.com/javase/specs/jvms/se11/html/jvms-4.html
* http://en.wikipedia.org/wiki/Class_(file_format)

:license: LGPL v.3
"""  # noqa


from .errors import (
    AttributeFormatError, ClassfileError, DescriptorError, EncodingError,
    RangeError, ResolutionError, StructuralError, UnknownOpcodeError,
    UnknownTagError,
)
from .opcodes import assemble, disassemble, instruction_text
from .pack import compile_struct, pack, unpack, UnpackException


__all__ = (
    "JavaClassInfo", "JavaConstantPool", "JavaMemberInfo",
    "JavaAttributes", "JavaCodeInfo", "JavaExceptionInfo",
    "ClassfileError", "StructuralError", "UnknownTagError",
    "UnknownOpcodeError", "EncodingError", "ResolutionError",
    "AttributeFormatError", "RangeError", "DescriptorError",
    "ClassUnpackException", "UnpackException",
    "platform_from_version",
    "is_class", "is_class_file",
    "unpack_class", "unpack_classfile",
    "pack_class", "pack_classfile",
    "resolve_utf8", "resolve_class_name",
    "assemble", "disassemble", "instruction_text",
    "CONST_Utf8", "CONST_Integer", "CONST_Float",
    "CONST_Long", "CONST_Double", "CONST_Class",
    "CONST_String", "CONST_Fieldref", "CONST_Methodref",
    "CONST_InterfaceMethodref", "CONST_NameAndType",
    "CONST_MethodHandle", "CONST_MethodType",
    "CONST_Dynamic", "CONST_InvokeDynamic",
    "CONST_Module", "CONST_Package",
    "ACC_PUBLIC", "ACC_PRIVATE", "ACC_PROTECTED",
    "ACC_STATIC", "ACC_FINAL", "ACC_SYNCHRONIZED",
    "ACC_SUPER", "ACC_VOLATILE", "ACC_BRIDGE",
    "ACC_TRANSIENT", "ACC_VARARGS", "ACC_NATIVE",
    "ACC_INTERFACE", "ACC_ABSTRACT", "ACC_STRICT",
    "ACC_SYNTHETIC", "ACC_ANNOTATION", "ACC_ENUM",
    "ACC_MODULE",
    "MAX_ATTRIBUTE_DEPTH",
)


# the four bytes at the start of every class file
JAVA_CLASS_MAGIC = (0xCA, 0xFE, 0xBA, 0xBE)


_BUFFERING = 2 ** 14


# Code attributes carry their own attributes table, which could in
# principle hold another Code attribute. Refuse to follow that deeper
# than this.
MAX_ATTRIBUTE_DEPTH = 8


# The constant pool types
# pylint: disable=C0103
CONST_Utf8 = 1
CONST_Integer = 3
CONST_Float = 4
CONST_Long = 5
CONST_Double = 6
CONST_Class = 7
CONST_String = 8
CONST_Fieldref = 9
CONST_Methodref = 10
CONST_InterfaceMethodref = 11
CONST_NameAndType = 12
CONST_MethodHandle = 15
CONST_MethodType = 16
CONST_Dynamic = 17
CONST_InvokeDynamic = 18
CONST_Module = 19
CONST_Package = 20


_CONST_NAMES = {
    CONST_Utf8: "Utf8",
    CONST_Integer: "Integer",
    CONST_Float: "Float",
    CONST_Long: "Long",
    CONST_Double: "Double",
    CONST_Class: "Class",
    CONST_String: "String",
    CONST_Fieldref: "Fieldref",
    CONST_Methodref: "Methodref",
    CONST_InterfaceMethodref: "InterfaceMethodref",
    CONST_NameAndType: "NameAndType",
    CONST_MethodHandle: "MethodHandle",
    CONST_MethodType: "MethodType",
    CONST_Dynamic: "Dynamic",
    CONST_InvokeDynamic: "InvokeDynamic",
    CONST_Module: "Module",
    CONST_Package: "Package",
    None: "unusable",
}


# constant types holding a single index, and those holding a pair
_ONE_REF_CONSTS = (CONST_Class, CONST_String, CONST_MethodType,
                   CONST_Module, CONST_Package)
_TWO_REF_CONSTS = (CONST_Fieldref, CONST_Methodref,
                   CONST_InterfaceMethodref, CONST_NameAndType)
_BOOTSTRAP_CONSTS = (CONST_Dynamic, CONST_InvokeDynamic)


# class and member flags
ACC_PUBLIC = 0x0001
ACC_PRIVATE = 0x0002
ACC_PROTECTED = 0x0004
ACC_STATIC = 0x0008
ACC_FINAL = 0x0010
ACC_SYNCHRONIZED = 0x0020
ACC_SUPER = 0x0020
ACC_VOLATILE = 0x0040
ACC_BRIDGE = 0x0040
ACC_TRANSIENT = 0x0080
ACC_VARARGS = 0x0080
ACC_NATIVE = 0x0100
ACC_INTERFACE = 0x0200
ACC_ABSTRACT = 0x0400
ACC_STRICT = 0x0800
ACC_SYNTHETIC = 0x1000
ACC_ANNOTATION = 0x2000
ACC_ENUM = 0x4000
ACC_MODULE = 0x8000


# commonly re-occurring struct formats
_B = compile_struct(">B")
_BBBB = compile_struct(">BBBB")
_BH = compile_struct(">BH")
_BBH = compile_struct(">BBH")
_BHH = compile_struct(">BHH")
_Bi = compile_struct(">Bi")
_BI = compile_struct(">BI")
_Bq = compile_struct(">Bq")
_BQ = compile_struct(">BQ")
_H = compile_struct(">H")
_HH = compile_struct(">HH")
_HHH = compile_struct(">HHH")
_HHHH = compile_struct(">HHHH")
_HI = compile_struct(">HI")
_HHI = compile_struct(">HHI")
_i = compile_struct(">i")
_I = compile_struct(">I")
_q = compile_struct(">q")
_Q = compile_struct(">Q")
_f = compile_struct(">f")
_d = compile_struct(">d")


class ClassUnpackException(StructuralError):
    """
    raised when the data doesn't start with the class file magic
    """

    def __init__(self, magic):
        magic = tuple(magic)
        seen = "".join("%02X" % m for m in magic)
        msg = "Not a Java class file, expected magic CAFEBABE, found %s" % seen
        super(ClassUnpackException, self).__init__(msg, 0)

        self.magic = magic


def _check_ref(index, what, optional=False):
    """
    raises a RangeError unless index is usable as a constant pool
    index. optional references may also be 0, meaning none.
    """

    if optional and index == 0:
        return

    if not isinstance(index, int) or not (0 < index <= 0xFFFF):
        raise RangeError("%s index %r not in range [1, 65535]"
                         % (what, index), index)


class JavaConstantPool(object):
    """
    A constants pool. The consts tuple is indexed by the constant
    pool index itself; consts[0], and the slot following each long or
    double, hold the unusable (None, None) entry.

    reference: https://docs.oracle.com/javase/specs/jvms/se11/html/jvms-4.html#jvms-4.4
    """  # noqa

    def __init__(self, entries=()):
        items = [(None, None), ]

        for item in entries:
            t, v = item
            if not t:
                # allows passing the consts of another pool
                continue

            items.append((t, v))
            if t in (CONST_Long, CONST_Double):
                items.append((None, None))

        self.consts = tuple(items)


    def __eq__(self, other):
        return (isinstance(other, JavaConstantPool) and
                (self.consts == other.consts))


    def __len__(self):
        return len(self.consts)


    def unpack(self, unpacker):
        """
        Unpacks the constant pool from an unpacker stream
        """

        (count, ) = unpacker.unpack_struct(_H)

        # first item is never present in the actual data buffer, but
        # the count number acts like it would be.
        items = [(None, None), ]

        while len(items) < count:
            item = _unpack_const_item(unpacker, len(items))
            items.append(item)

            # Long and Double const types will "consume" an item
            # count, but not data
            if item[0] in (CONST_Long, CONST_Double):
                items.append((None, None))

        if len(items) != count:
            # a long or double in the last slot runs past the count
            raise StructuralError("constant pool count is %i, but its"
                                  " entries fill %i slots"
                                  % (count, len(items)),
                                  getattr(unpacker, "offset", None))

        self.consts = tuple(items)


    def pack(self, packer):
        """
        Packs the constant pool. The count written includes index 0 and
        the unusable slots after longs and doubles, just as it was read.
        """

        consts = self.consts
        packer.pack_struct(_H, len(consts))

        for index in range(1, len(consts)):
            t, v = consts[index]
            if t:
                _pack_const_item(packer, t, v, index)


    def get_const(self, index):
        """
        returns the type and value of the constant at index. The slot
        after a long or double gives (None, None). Raises a
        ResolutionError for 0 or indexes past the end of the pool.
        """

        if not isinstance(index, int) or not (0 < index < len(self.consts)):
            raise ResolutionError("const index %r not in pool of %i"
                                  % (index, len(self.consts)), index)

        return self.consts[index]


    def _get_typed(self, index, typecode):
        t, v = self.get_const(index)
        if t != typecode:
            raise ResolutionError("const #%i is %s, expected %s"
                                  % (index, _CONST_NAMES.get(t, t),
                                     _CONST_NAMES[typecode]), index)
        return v


    def get_utf8(self, index):
        """
        the string of the Utf8 constant at index
        """

        return self._get_typed(index, CONST_Utf8)


    def get_class_name(self, index):
        """
        the internal name of the Class constant at index, eg.
        java/lang/Object
        """

        return self.get_utf8(self._get_typed(index, CONST_Class))


    def deref_const(self, index):
        """
        returns the dereferenced value from the const pool. For simple
        types, this will be a single value indicating the constant.
        For more complex types, such as fieldref, methodref, etc, this
        will return a tuple.
        """

        t, v = self.get_const(index)

        if t in (CONST_Utf8, CONST_Integer, CONST_Long):
            return v

        elif t == CONST_Float:
            return _f.unpack(_I.pack(v))[0]

        elif t == CONST_Double:
            return _d.unpack(_Q.pack(v))[0]

        elif t in _ONE_REF_CONSTS:
            return self.deref_const(v)

        elif t in _TWO_REF_CONSTS:
            return tuple(self.deref_const(i) for i in v)

        elif t == CONST_MethodHandle:
            return (v[0], self.deref_const(v[1]))

        elif t in _BOOTSTRAP_CONSTS:
            # v[0] is an index into the BootstrapMethods attribute,
            # not into the pool
            return (v[0], self.deref_const(v[1]))

        else:
            raise ResolutionError("const #%i is the unusable slot after"
                                  " a long or double" % index, index)


    def constants(self):
        """
        sequence of tuples (index, type, dereferenced value) of the
        constant pool entries.
        """

        for i in range(1, len(self.consts)):
            t, _v = self.consts[i]
            if t:
                yield (i, t, self.deref_const(i))


    def pretty_constants(self):
        """
        the sequence of tuples (index, pretty type, value) of the constant
        pool entries.
        """

        for i in range(1, len(self.consts)):
            t, v = self.pretty_const(i)
            if t:
                yield (i, t, v)


    def pretty_const(self, index):
        """
        a tuple of the pretty type and val, or (None, None) for invalid
        indexes (such as the second part of a long or double value)
        """

        t, v = self.get_const(index)
        if not t:
            return None, None
        else:
            return _pretty_const_type_val(t, v)


    def pretty_deref_const(self, index):
        """
        A string representation of the end-value of a constant.  This will
        deref the constant index, and if it is a compound type, will
        continue dereferencing until it can compose the full value
        (eg: a CONST_Methodref will be composed of its class, name,
        and value derefenced constants)
        """

        t, v = self.get_const(index)

        if t in (CONST_Utf8, CONST_Integer, CONST_Long,
                 CONST_Float, CONST_Double, CONST_String):
            result = self.deref_const(index)

        elif t == CONST_Class:
            result = _pretty_class(self.get_utf8(v))

        elif t in (CONST_Fieldref, CONST_Methodref,
                   CONST_InterfaceMethodref):

            cn = _pretty_class(self.get_class_name(v[0]))
            n, d = self.deref_const(v[1])

            if t == CONST_Fieldref:
                result = "%s.%s:%s" % (cn, n, _pretty_type(d))
            else:
                args, ret = tuple(_pretty_typeseq(d))
                result = "%s.%s%s:%s" % (cn, n, args, ret)

        elif t == CONST_NameAndType:
            n, d = self.deref_const(index)
            result = "%s:%s" % (n, "".join(_pretty_typeseq(d)))

        elif t == CONST_MethodType:
            result = "".join(_pretty_typeseq(self.get_utf8(v)))

        elif t == CONST_MethodHandle:
            result = "MethodHandle %i %s" % (v[0],
                                             self.pretty_deref_const(v[1]))

        elif t in _BOOTSTRAP_CONSTS:
            result = "%s #%i:%s" % (_CONST_NAMES[t], v[0],
                                    self.pretty_deref_const(v[1]))

        elif t == CONST_Module:
            result = "Module %s" % self.get_utf8(v)

        elif t == CONST_Package:
            result = "Package %s" % self.get_utf8(v)

        else:
            # the skipped-type, meaning the prior index was a
            # two-slotter.
            result = ""

        return result


def resolve_utf8(cpool, index):
    """
    the string of the Utf8 constant at index in cpool. Raises a
    ResolutionError if index isn't a Utf8 constant.
    """

    return cpool.get_utf8(index)


def resolve_class_name(cpool, index):
    """
    the internal name of the Class constant at index in cpool. Raises
    a ResolutionError if index isn't a Class constant naming a Utf8.
    """

    return cpool.get_class_name(index)


class JavaAttributes(object):
    """
    attributes table, as used in class, member, and code structures.
    An ordered sequence of (name_ref, payload) pairs, where payload is
    the raw bytes of the attribute. Duplicate names are kept.

    Requires access to a JavaConstantPool instance for the lookups by
    name to work.
    """

    def __init__(self, cpool, records=(), depth=0):
        self.cpool = cpool
        self.depth = depth
        self.records = tuple((name_ref, bytes(data))
                             for name_ref, data in records)


    def __eq__(self, other):
        return (isinstance(other, JavaAttributes) and
                (self.records == other.records))


    def __iter__(self):
        return iter(self.records)


    def __len__(self):
        return len(self.records)


    def __getitem__(self, index):
        return self.records[index]


    def __repr__(self):
        return "JavaAttributes(%r)" % (self.records, )


    def unpack(self, unpacker):
        """
        Unpack an attributes table from an unpacker stream. The payloads
        are kept as-is, and the names aren't looked up.
        """

        records = list()

        (count,) = unpacker.unpack_struct(_H)
        for _i in range(0, count):
            (name, size) = unpacker.unpack_struct(_HI)
            records.append((name, unpacker.read(size)))

        self.records = tuple(records)


    def pack(self, packer):
        """
        Pack an attributes table, writing each payload verbatim
        """

        packer.pack_struct(_H, len(self.records))

        for name_ref, data in self.records:
            _check_ref(name_ref, "attribute name")
            packer.pack_struct(_HI, name_ref, len(data))
            packer.write(data)


    def names(self):
        """
        the names of the attributes, in order
        """

        return tuple(self.cpool.get_utf8(n) for n, _d in self.records)


    def get_all(self, name):
        """
        generator of the payloads of every attribute called name. A
        record whose name doesn't resolve to a Utf8 cannot be called
        name, so it is passed over rather than raised on; use names to
        find those.
        """

        consts = self.cpool.consts
        wanted = (CONST_Utf8, name)

        for name_ref, data in self.records:
            if 0 < name_ref < len(consts) and consts[name_ref] == wanted:
                yield data


    def get(self, name, default=None):
        """
        the payload of the first attribute called name
        """

        for data in self.get_all(name):
            return data
        return default


    def get_utf8_ref(self, name):
        """
        for attributes whose payload is a single index to a Utf8 constant
        (SourceFile and Signature), the dereferenced string, or None if
        there is no such attribute
        """

        buff = self.get(name)
        if buff is None:
            return None

        if len(buff) != 2:
            raise AttributeFormatError(name, 2, len(buff))

        (ref,) = _H.unpack(buff)
        return self.cpool.get_utf8(ref)


    def get_code(self):
        """
        the JavaCodeInfo decoded from the Code attribute, or None if there
        isn't one
        """

        buff = self.get("Code")
        if buff is None:
            return None

        code = JavaCodeInfo(self.cpool, self.depth + 1)

        with unpack(buff) as up:
            code.unpack(up)

            extra = up.remaining()
            if extra:
                raise StructuralError("%i bytes left over after Code"
                                      " attribute" % extra, up.offset)

        return code


class JavaClassInfo(object):
    """
    Information from a disassembled Java class file.

    reference: https://docs.oracle.com/javase/specs/jvms/se11/html/jvms-4.html
    """

    def __init__(self, cpool=None):
        if cpool is None:
            cpool = JavaConstantPool()

        self.cpool = cpool
        self.attribs = JavaAttributes(self.cpool)

        self.magic = JAVA_CLASS_MAGIC
        self.version = (0, 0)
        self.access_flags = 0
        self.this_ref = 0
        self.super_ref = 0
        self.interfaces = tuple()
        self.fields = tuple()
        self.methods = tuple()


    def __eq__(self, other):
        return (isinstance(other, JavaClassInfo) and
                (self.magic == other.magic) and
                (self.version == other.version) and
                (self.cpool == other.cpool) and
                (self.access_flags == other.access_flags) and
                (self.this_ref == other.this_ref) and
                (self.super_ref == other.super_ref) and
                (self.interfaces == other.interfaces) and
                (self.fields == other.fields) and
                (self.methods == other.methods) and
                (self.attribs == other.attribs))


    def deref_const(self, index):
        """
        dereference a value from the parent constant pool
        """

        return self.cpool.deref_const(index)


    def get_attribute(self, name):
        """
        get an attribute buffer by name
        """

        return self.attribs.get(name)


    def unpack(self, unpacker, magic=None):
        """
        Unpacks a Java class from an unpacker stream. Updates the
        structure of this instance.

        If the unpacker has already had the magic header read off of
        it, the read value may be passed via the optional magic
        parameter and it will not attempt to read the value again.
        """

        # only unpack the magic bytes if it wasn't specified
        magic = tuple(magic or unpacker.unpack_struct(_BBBB))
        if magic != JAVA_CLASS_MAGIC:
            raise ClassUnpackException(magic)

        self.magic = magic

        # unpack (minor, major), store as (major, minor)
        self.version = unpacker.unpack_struct(_HH)[::-1]

        # unpack constant pool
        self.cpool.unpack(unpacker)

        (a, b, c) = unpacker.unpack_struct(_HHH)
        self.access_flags = a
        self.this_ref = b
        self.super_ref = c

        # unpack interfaces
        (count,) = unpacker.unpack_struct(_H)
        self.interfaces = unpacker.unpack(">%iH" % count)

        uobjs = unpacker.unpack_objects

        # unpack fields
        self.fields = tuple(uobjs(JavaMemberInfo,
                                  self.cpool, is_method=False))

        # unpack methods
        self.methods = tuple(uobjs(JavaMemberInfo,
                                   self.cpool, is_method=True))

        # unpack attributes
        self.attribs.unpack(unpacker)


    def pack(self, packer):
        """
        Packs this Java class into packer. The class is packed into
        memory first, so if a RangeError is raised nothing will have
        been written to packer.
        """

        _check_ref(self.this_ref, "this class")
        _check_ref(self.super_ref, "super class", optional=True)
        for iref in self.interfaces:
            _check_ref(iref, "interface")

        buff = pack()

        buff.pack_struct(_BBBB, *self.magic)

        major, minor = self.version
        buff.pack_struct(_HH, minor, major)

        self.cpool.pack(buff)

        buff.pack_struct(_HHH, self.access_flags,
                         self.this_ref, self.super_ref)

        buff.pack_struct(_H, len(self.interfaces))
        buff.pack(">%iH" % len(self.interfaces), *self.interfaces)

        buff.pack_objects(self.fields)
        buff.pack_objects(self.methods)

        self.attribs.pack(buff)

        packer.write(buff.getvalue())


    def get_field_by_name(self, name):
        """
        the field member matching name, or None if no such field is found
        """

        for f in self.fields:
            if f.get_name() == name:
                return f
        return None


    def get_methods_by_name(self, name):
        """
        generator of methods matching name. This will include any bridges
        present.
        """

        return (m for m in self.methods if m.get_name() == name)


    def get_version(self):
        """
        the (major, minor) version of Java required by this Java class
        """

        return self.version


    def get_platform(self):
        """
        The platform as a string, derived from the major and minor version
        number
        """

        return platform_from_version(*self.version)


    def is_public(self):
        return self.access_flags & ACC_PUBLIC


    def is_final(self):
        return self.access_flags & ACC_FINAL


    def is_super(self):
        """
        class has the Super flag set.

        This flag is used by the JVM to differentiate the behavior in
        the method resolution order of the class.
        """

        return self.access_flags & ACC_SUPER


    def is_interface(self):
        return self.access_flags & ACC_INTERFACE


    def is_abstract(self):
        return self.access_flags & ACC_ABSTRACT


    def is_annotation(self):
        return self.access_flags & ACC_ANNOTATION


    def is_enum(self):
        return self.access_flags & ACC_ENUM


    def get_this(self):
        """
        the name of this class
        """

        return self.cpool.get_class_name(self.this_ref)


    def get_super(self):
        """
        get the parent class that this extends, or the empty string for
        java/lang/Object itself
        """

        if self.super_ref:
            return self.cpool.get_class_name(self.super_ref)
        else:
            return ""


    def get_interfaces(self):
        """
        tuple of interfaces that this class implements
        """

        return tuple(self.cpool.get_class_name(i) for i in self.interfaces)


    def get_sourcefile(self):
        """
        the name of the file this class was compiled from, or None if not
        indicated. Raises AttributeFormatError if the attribute is not
        a single constant index.

        reference: https://docs.oracle.com/javase/specs/jvms/se11/html/jvms-4.html#jvms-4.7.10
        """  # noqa

        return self.attribs.get_utf8_ref("SourceFile")


    def get_signature(self):
        """
        the generics class signature

        reference: https://docs.oracle.com/javase/specs/jvms/se11/html/jvms-4.html#jvms-4.7.9
        """  # noqa

        return self.attribs.get_utf8_ref("Signature")


    def _pretty_access_flags_gen(self):
        """
        generator of the pretty access flags
        """

        if self.is_public():
            yield "public"
        if self.is_final():
            yield "final"
        if self.is_abstract():
            yield "abstract"
        if self.is_interface():
            if self.is_annotation():
                yield "@interface"
            else:
                yield "interface"
        if self.is_enum():
            yield "enum"


    def pretty_access_flags(self):
        """
        generator of the pretty access flag names
        """

        return self._pretty_access_flags_gen()


    def pretty_this(self):
        return _pretty_class(self.get_this())


    def pretty_super(self):
        return _pretty_class(self.get_super())


    def pretty_interfaces(self):
        return (_pretty_class(t) for t in self.get_interfaces())


    def pretty_descriptor(self):
        """
        get the class or interface name, its accessor flags, its parent
        class, and any interfaces it implements
        """

        f = " ".join(self.pretty_access_flags())
        if not self.is_interface():
            f += " class"

        n = self.pretty_this()
        e = self.pretty_super()
        i = ",".join(self.pretty_interfaces())

        result = "%s %s" % (f.strip(), n)
        if e:
            result += " extends %s" % e
        if i:
            result += " implements %s" % i

        return result


class JavaMemberInfo(object):
    """
    A field or method of a java class
    """

    def __init__(self, cpool, is_method=False):
        self.cpool = cpool
        self.attribs = JavaAttributes(cpool)
        self.access_flags = 0
        self.name_ref = 0
        self.descriptor_ref = 0
        self.is_method = is_method


    def __eq__(self, other):
        return (isinstance(other, JavaMemberInfo) and
                (self.is_method == other.is_method) and
                (self.access_flags == other.access_flags) and
                (self.name_ref == other.name_ref) and
                (self.descriptor_ref == other.descriptor_ref) and
                (self.attribs == other.attribs))


    def __repr__(self):
        kind = "method" if self.is_method else "field"
        return "<JavaMemberInfo %s #%i:#%i>" % \
               (kind, self.name_ref, self.descriptor_ref)


    def deref_const(self, index):
        """
        Dereference a constant in the parent constant pool
        """

        return self.cpool.deref_const(index)


    def get_attribute(self, name):
        """
        Get an attribute buffer by name
        """

        return self.attribs.get(name)


    def unpack(self, unpacker):
        """
        unpack the contents of this instance from the values in unpacker
        """

        (a, b, c) = unpacker.unpack_struct(_HHH)

        self.access_flags = a
        self.name_ref = b
        self.descriptor_ref = c
        self.attribs.unpack(unpacker)


    def pack(self, packer):
        """
        pack the contents of this instance into packer
        """

        _check_ref(self.name_ref, "member name")
        _check_ref(self.descriptor_ref, "member descriptor")

        packer.pack_struct(_HHH, self.access_flags,
                           self.name_ref, self.descriptor_ref)
        self.attribs.pack(packer)


    def get_name(self):
        """
        the name of this member
        """

        return self.cpool.get_utf8(self.name_ref)


    def get_descriptor(self):
        """
        the descriptor of this member
        """

        return self.cpool.get_utf8(self.descriptor_ref)


    def get_signature(self):
        """
        the Signature attribute
        """

        return self.attribs.get_utf8_ref("Signature")


    def get_code(self):
        """
        the JavaCodeInfo of this member if it is a non-abstract method,
        None otherwise

        reference: https://docs.oracle.com/javase/specs/jvms/se11/html/jvms-4.html#jvms-4.7.3
        """  # noqa

        return self.attribs.get_code()


    def get_exceptions(self):
        """
        a tuple of class names for the exception types this method may
        raise, or an empty tuple if it declares none

        reference: https://docs.oracle.com/javase/specs/jvms/se11/html/jvms-4.html#jvms-4.7.5
        """  # noqa

        buff = self.get_attribute("Exceptions")
        if buff is None:
            return ()

        with unpack(buff) as up:
            return tuple(self.cpool.get_class_name(e[0]) for e
                         in up.unpack_struct_array(_H))


    def is_public(self):
        return self.access_flags & ACC_PUBLIC


    def is_private(self):
        return self.access_flags & ACC_PRIVATE


    def is_protected(self):
        return self.access_flags & ACC_PROTECTED


    def is_static(self):
        return self.access_flags & ACC_STATIC


    def is_final(self):
        return self.access_flags & ACC_FINAL


    def is_synchronized(self):
        return self.is_method and self.access_flags & ACC_SYNCHRONIZED


    def is_native(self):
        return self.access_flags & ACC_NATIVE


    def is_abstract(self):
        return self.access_flags & ACC_ABSTRACT


    def is_volatile(self):
        return (not self.is_method) and self.access_flags & ACC_VOLATILE


    def is_transient(self):
        return (not self.is_method) and self.access_flags & ACC_TRANSIENT


    def is_bridge(self):
        return self.is_method and self.access_flags & ACC_BRIDGE


    def is_varargs(self):
        return self.is_method and self.access_flags & ACC_VARARGS


    def is_synthetic(self):
        """
        is this a synthetic member, by flag or by attribute

        reference: https://docs.oracle.com/javase/specs/jvms/se11/html/jvms-4.html#jvms-4.7.8
        """  # noqa

        return ((self.access_flags & ACC_SYNTHETIC) or
                (self.get_attribute("Synthetic") is not None))


    def get_type_descriptor(self):
        """
        the type descriptor for a field, or the return type descriptor for
        a method.
        """

        desc = self.get_descriptor()
        types = _typeseq(desc)
        if not types:
            raise DescriptorError(desc, "expected a type, found nothing")

        return types[-1]


    def get_arg_type_descriptors(self):
        """
        The parameter type descriptor list for a method, or an empty tuple
        for a field.
        """

        if not self.is_method:
            return tuple()

        tp = _typeseq(self.get_descriptor())
        return _typeseq(tp[0][1:-1])


    def pretty_type(self):
        return _pretty_type(self.get_type_descriptor())


    def pretty_arg_types(self):
        return (_pretty_type(t) for t in self.get_arg_type_descriptors())


    def pretty_exceptions(self):
        return (_pretty_class(e) for e in self.get_exceptions())


    def _pretty_access_flags_gen(self):

        if self.is_public():
            yield "public"
        if self.is_private():
            yield "private"
        if self.is_protected():
            yield "protected"
        if self.is_static():
            yield "static"
        if self.is_final():
            yield "final"
        if self.is_synchronized():
            yield "synchronized"
        if self.is_native():
            yield "native"
        if self.is_abstract():
            yield "abstract"
        if self.is_transient():
            yield "transient"
        if self.is_volatile():
            yield "volatile"


    def pretty_access_flags(self):
        """
        generator of the keywords determined from the access flags
        """

        return self._pretty_access_flags_gen()


    def pretty_descriptor(self):
        """
        assemble a long member name from access flags, type, argument
        types, exceptions as applicable
        """

        f = " ".join(self.pretty_access_flags())
        p = self.pretty_type()
        n = self.get_name()
        t = ",".join(self.pretty_exceptions())

        if n == "<init>":
            # we pretend that there's no return type, even though it's
            # V for constructors
            p = None

        if self.is_method:
            n = "%s(%s)" % (n, ",".join(self.pretty_arg_types()))

        if t:
            t = "throws " + t

        return " ".join(z for z in (f, p, n, t) if z)


class JavaCodeInfo(object):
    """
    The 'Code' attribue of a method member of a java class. The
    instructions stay as raw bytes in code until disassemble is
    called.

    reference: https://docs.oracle.com/javase/specs/jvms/se11/html/jvms-4.html#jvms-4.7.3
    """  # noqa

    def __init__(self, cpool, depth=1):
        if depth > MAX_ATTRIBUTE_DEPTH:
            raise StructuralError("Code attributes nested deeper than %i"
                                  % MAX_ATTRIBUTE_DEPTH)

        self.cpool = cpool
        self.attribs = JavaAttributes(cpool, depth=depth)
        self.max_stack = 0
        self.max_locals = 0
        self.code = b""
        self.exceptions = tuple()


    @property
    def code(self):
        """
        the raw bytecode. Assigning it drops any cached disassembly.
        """

        return self._code


    @code.setter
    def code(self, data):
        self._code = data
        self._dis_code = None


    def __eq__(self, other):
        return (isinstance(other, JavaCodeInfo) and
                (self.max_stack == other.max_stack) and
                (self.max_locals == other.max_locals) and
                (self.code == other.code) and
                (self.exceptions == other.exceptions) and
                (self.attribs == other.attribs))


    def get_attribute(self, name):
        """
        get an attribute buffer by name
        """

        return self.attribs.get(name)


    def unpack(self, unpacker):
        """
        unpacks a code block from a buffer. Updates the internal structure
        of this instance
        """

        (a, b, c) = unpacker.unpack_struct(_HHI)

        self.max_stack = a
        self.max_locals = b
        self.code = unpacker.read(c)

        uobjs = unpacker.unpack_objects
        self.exceptions = tuple(uobjs(JavaExceptionInfo, self))

        self.attribs.unpack(unpacker)


    def pack(self, packer):
        """
        packs this code block as the payload of a Code attribute
        """

        packer.pack_struct(_HHI, self.max_stack, self.max_locals,
                           len(self.code))
        packer.write(self.code)
        packer.pack_objects(self.exceptions)
        self.attribs.pack(packer)


    def to_bytes(self):
        """
        the payload of a Code attribute holding this code block
        """

        buff = pack()
        self.pack(buff)
        return buff.getvalue()


    def set_instructions(self, instructions):
        """
        replace the code with the assembled instructions, a sequence as
        returned from disassemble
        """

        self.code = assemble(instructions)


    def disassemble(self):
        """
        disassembles the underlying bytecode instructions and returns a
        tuple of (offset, Instruction) pairs
        """

        dis = self._dis_code
        if dis is None:
            dis = disassemble(self.code)
            self._dis_code = dis

        return dis


    def get_linenumbertable(self):
        """
        a sequence of (code_offset, line_number) pairs.

        reference: https://docs.oracle.com/javase/specs/jvms/se11/html/jvms-4.html#jvms-4.7.12
        """  # noqa

        buff = self.get_attribute("LineNumberTable")
        if buff is None:
            return tuple()

        with unpack(buff) as up:
            return tuple(up.unpack_struct_array(_HH))


class JavaExceptionInfo(object):
    """
    Information about an exception handler entry in an exception table
    """

    def __init__(self, code):
        self.code = code
        self.cpool = code.cpool

        self.start_pc = 0
        self.end_pc = 0
        self.handler_pc = 0
        self.catch_type_ref = 0


    def unpack(self, unpacker):
        """
        unpacks an exception handler entry in an exception table. Updates
        the internal structure of this instance
        """

        (a, b, c, d) = unpacker.unpack_struct(_HHHH)

        self.start_pc = a
        self.end_pc = b
        self.handler_pc = c
        self.catch_type_ref = d


    def pack(self, packer):
        _check_ref(self.catch_type_ref, "catch type", optional=True)

        packer.pack_struct(_HHHH, self.start_pc, self.end_pc,
                           self.handler_pc, self.catch_type_ref)


    def get_catch_type(self):
        """
        dereferences the catch_type_ref to its class name, or None if the
        catch type is unspecified
        """

        if self.catch_type_ref:
            return self.cpool.get_class_name(self.catch_type_ref)
        else:
            return None


    def pretty_catch_type(self):
        """
        If the catch type isn't specified, returns "any". Otherwise
        prefixes the pretty class name with the text "Class ", as javap
        does.
        """

        ct = self.get_catch_type()
        if ct:
            return "Class " + _pretty_class(ct)
        else:
            return "any"


    def info(self):
        """
        tuple of the start_pc, end_pc, handler_pc and catch_type_ref
        """

        return (self.start_pc, self.end_pc,
                self.handler_pc, self.catch_type_ref)


    def __eq__(self, other):
        return (isinstance(other, JavaExceptionInfo) and
                (self.info() == other.info()))


    def __repr__(self):
        return "<JavaExceptionInfo %r>" % (self.info(), )


# -----
# Utility functions for turning major/minor versions into JVM releases
# Each entry is a tuple of minimum version and maxiumum version,
# inclusive, and the string of the platform version.


_platforms = (
    ((45, 0), (45, 3), "1.0.2"),
    ((45, 4), (45, 65535), "1.1"),
    ((46, 0), (46, 65535), "1.2"),
    ((47, 0), (47, 65535), "1.3"),
    ((48, 0), (48, 65535), "1.4"),
    ((49, 0), (49, 65535), "1.5"),
    ((50, 0), (50, 65535), "1.6"),
    ((51, 0), (51, 65535), "1.7"),
    ((52, 0), (52, 65535), "1.8"),
    ((53, 0), (53, 65535), "9"),
    ((54, 0), (54, 65535), "10"),
    ((55, 0), (55, 65535), "11"),
    ((56, 0), (56, 65535), "12"),
    ((57, 0), (57, 65535), "13"),
    ((58, 0), (58, 65535), "14"),
    ((59, 0), (59, 65535), "15"),
    ((60, 0), (60, 65535), "16"),
    ((61, 0), (61, 65535), "17"),
    ((62, 0), (62, 65535), "18"),
    ((63, 0), (63, 65535), "19"),
    ((64, 0), (64, 65535), "20"),
    ((65, 0), (65, 65535), "21"), )


def platform_from_version(major, minor):
    """
    returns the minimum platform version that can load the given class
    version indicated by major.minor or None if no known platforms
    match the given version
    """

    v = (major, minor)
    for low, high, name in _platforms:
        if low <= v <= high:
            return name
    return None


# -----
# Utility functions for the constants pool


def _decode_modified_utf8(data, index=None):
    """
    decode the bytes of a Utf8 constant. Java writes these in a
    modified UTF-8, which encodes NUL as C0 80 and supplementary
    characters as a pair of encoded surrogates
    """

    try:
        return data.decode("utf8")
    except UnicodeDecodeError:
        pass

    try:
        val = data.replace(b"\xC0\x80", b"\x00").decode("utf8",
                                                        "surrogatepass")
    except UnicodeDecodeError as ude:
        raise EncodingError(data, ude.reason, index)

    if any(0xD800 <= ord(c) <= 0xDFFF for c in val):
        # rejoin the surrogate pairs into single characters
        val = val.encode("utf-16-be", "surrogatepass") \
                 .decode("utf-16-be", "surrogatepass")

    return val


def _to_surrogates(c):
    point = ord(c)
    if point <= 0xFFFF:
        return c

    point -= 0x10000
    return chr(0xD800 + (point >> 10)) + chr(0xDC00 + (point & 0x3FF))


def _encode_modified_utf8(val):
    """
    the inverse of _decode_modified_utf8
    """

    if any(ord(c) > 0xFFFF for c in val):
        val = "".join(_to_surrogates(c) for c in val)

    data = val.encode("utf8", "surrogatepass")
    return data.replace(b"\x00", b"\xC0\x80")


def _unpack_const_item(unpacker, index=None):
    """
    unpack a constant pool item, which will consist of a type byte
    (see the CONST_ values in this module) and a value of the
    appropriate type
    """

    offset = getattr(unpacker, "offset", None)

    (typecode,) = unpacker.unpack_struct(_B)

    if typecode == CONST_Utf8:
        (slen,) = unpacker.unpack_struct(_H)
        val = _decode_modified_utf8(unpacker.read(slen), index)

    elif typecode == CONST_Integer:
        (val,) = unpacker.unpack_struct(_i)

    elif typecode == CONST_Float:
        # kept as the bit pattern, so that NaNs compare and repack
        (val,) = unpacker.unpack_struct(_I)

    elif typecode == CONST_Long:
        (val,) = unpacker.unpack_struct(_q)

    elif typecode == CONST_Double:
        (val,) = unpacker.unpack_struct(_Q)

    elif typecode in _ONE_REF_CONSTS:
        (val,) = unpacker.unpack_struct(_H)

    elif typecode in _TWO_REF_CONSTS or typecode in _BOOTSTRAP_CONSTS:
        val = unpacker.unpack_struct(_HH)

    elif typecode == CONST_MethodHandle:
        val = unpacker.unpack_struct(_BH)

    else:
        raise UnknownTagError(typecode, index, offset)

    return typecode, val


def _pack_const_item(packer, typecode, val, index=None):
    """
    pack a constant pool item, the inverse of _unpack_const_item
    """

    what = "const #%s" % index

    if typecode == CONST_Utf8:
        data = _encode_modified_utf8(val)
        if len(data) > 0xFFFF:
            raise RangeError("%s Utf8 of %i bytes is too long"
                             % (what, len(data)), len(data))
        packer.pack_struct(_BH, typecode, len(data))
        packer.write(data)

    elif typecode == CONST_Integer:
        packer.pack_struct(_Bi, typecode, val)

    elif typecode == CONST_Float:
        packer.pack_struct(_BI, typecode, val)

    elif typecode == CONST_Long:
        packer.pack_struct(_Bq, typecode, val)

    elif typecode == CONST_Double:
        packer.pack_struct(_BQ, typecode, val)

    elif typecode in _ONE_REF_CONSTS:
        _check_ref(val, what)
        packer.pack_struct(_BH, typecode, val)

    elif typecode in _TWO_REF_CONSTS:
        _check_ref(val[0], what)
        _check_ref(val[1], what)
        packer.pack_struct(_BHH, typecode, *val)

    elif typecode in _BOOTSTRAP_CONSTS:
        _check_ref(val[1], what)
        packer.pack_struct(_BHH, typecode, *val)

    elif typecode == CONST_MethodHandle:
        _check_ref(val[1], what)
        packer.pack_struct(_BBH, typecode, *val)

    else:
        raise UnknownTagError(typecode, index)


def _pretty_const_type_val(typecode, val):
    """
    given a typecode and a value, returns the appropriate pretty
    version of that value (not the dereferenced data)
    """

    typestr = _CONST_NAMES.get(typecode)

    if typecode == CONST_Utf8:
        val = repr(val)[1:-1]  # trim off the surrounding quotes
    elif typecode == CONST_Integer:
        typestr = "int"
    elif typecode == CONST_Float:
        typestr = "float"
        val = "%ff" % _f.unpack(_I.pack(val))
    elif typecode == CONST_Long:
        typestr = "long"
        val = "%il" % val
    elif typecode == CONST_Double:
        typestr = "double"
        val = "%fd" % _d.unpack(_Q.pack(val))
    elif typecode == CONST_Class:
        typestr = "class"
        val = "#%i" % val
    elif typecode in (CONST_String, CONST_MethodType,
                      CONST_Module, CONST_Package):
        val = "#%i" % val
    elif typecode == CONST_Fieldref:
        typestr = "Field"
        val = "#%i.#%i" % val
    elif typecode == CONST_Methodref:
        typestr = "Method"
        val = "#%i.#%i" % val
    elif typecode == CONST_InterfaceMethodref:
        typestr = "InterfaceMethod"
        val = "#%i.#%i" % val
    elif typecode == CONST_NameAndType:
        val = "#%i:#%i" % val
    elif typecode == CONST_MethodHandle:
        val = "%i:#%i" % val
    elif typecode in _BOOTSTRAP_CONSTS:
        val = "#%i:#%i" % val
    else:
        raise UnknownTagError(typecode)

    return typestr, val


# -----
# Utility functions for dealing with exploding internal type
# signatures into sequences, and converting type signatures into
# "pretty" strings


def _next_argsig(s):
    """
    given a string, find the next complete argument signature and
    return it and a new string advanced past that point
    """

    if not s:
        raise DescriptorError(s, "expected a type, found nothing")

    c = s[0]

    if c in "BCDFIJSVZ":
        result = (c, s[1:])

    elif c == "[":
        d, rest = _next_argsig(s[1:])
        result = (c + d, rest)

    elif c in "L(":
        close = ";" if c == "L" else ")"
        i = s.find(close) + 1
        if not i:
            raise DescriptorError(s, "missing %r" % close)
        result = (s[:i], s[i:])

    else:
        raise DescriptorError(s, "unknown type signature %r" % c)

    return result


def _typeseq(type_s):
    """
    tuple of the type signatures in a sequence of them
    """

    result = list()
    while type_s:
        t, type_s = _next_argsig(type_s)
        result.append(t)
    return tuple(result)


def _pretty_typeseq(type_s):
    return (_pretty_type(t) for t in _typeseq(type_s))


_pretty_types = {
    "V": "void", "Z": "boolean", "C": "char", "B": "byte",
    "S": "short", "I": "int", "J": "long", "D": "double", "F": "float",
}


def _pretty_type(s, offset=0):
    """
    returns the pretty version of a type code
    """

    if offset >= len(s):
        raise DescriptorError(s, "expected a type, found nothing")

    tc = s[offset]

    if tc in _pretty_types:
        return _pretty_types[tc]

    elif tc == "L":
        return _pretty_class(s[offset + 1:-1])

    elif tc == "[":
        return "%s[]" % _pretty_type(s, offset + 1)

    elif tc == "(":
        return "(%s)" % ",".join(_pretty_typeseq(s[offset + 1:-1]))

    else:
        raise DescriptorError(s, "unknown type %r" % tc)


def _pretty_class(s):
    """
    convert the internal class name representation into what users
    expect to see. Currently that just means swapping '/' for '.'
    """

    return s.replace("/", ".")


# -----
# Functions for dealing with buffers and files


def is_class(data):
    """
    checks that the data (which is bytes, a buffer, or a stream
    supporting the read method) has the magic numbers indicating it is
    a Java class file. Returns False if the magic numbers do not
    match, or if there isn't enough data.
    """

    try:
        with unpack(data) as up:
            magic = up.unpack_struct(_BBBB)

        return magic == JAVA_CLASS_MAGIC

    except UnpackException:
        return False


def is_class_file(filename):
    """
    checks whether the given file is a Java class file, by opening it
    and checking for the magic header
    """

    with open(filename, "rb") as fd:
        c = fd.read(len(JAVA_CLASS_MAGIC))
        return tuple(c) == JAVA_CLASS_MAGIC


def unpack_class(data, magic=None):
    """
    unpacks a Java class from data, which can be bytes, a buffer, or
    a stream supporting the read method. Returns a populated
    JavaClassInfo instance.

    If data is a stream which has already been confirmed to be a java
    class, it may have had the first four bytes read from it already.
    In this case, pass those magic bytes as bytes or a tuple and the
    unpacker will not attempt to read them again.

    Raises a ClassfileError subclass if the class data is malformed:
    ClassUnpackException for the wrong magic, UnpackException if the
    data is truncated, UnknownTagError for an unknown constant type,
    EncodingError for an undecodable Utf8 constant.
    """

    with unpack(data) as up:
        magic = tuple(magic or up.unpack_struct(_BBBB))
        if magic != JAVA_CLASS_MAGIC:
            raise ClassUnpackException(magic)

        o = JavaClassInfo()
        o.unpack(up, magic=magic)

    return o


def unpack_classfile(filename):
    """
    returns a newly allocated JavaClassInfo object populated with the
    data unpacked from the specified file.
    """

    with open(filename, "rb", _BUFFERING) as fd:
        return unpack_class(fd.read())


def pack_class(info):
    """
    packs a JavaClassInfo into bytes. Raises a RangeError if any index
    or value doesn't fit its place in the class file format.
    """

    buff = pack()
    info.pack(buff)
    return buff.getvalue()


def pack_classfile(info, filename):
    """
    packs a JavaClassInfo and writes it to the specified file. The
    file is only opened once packing has succeeded.
    """

    data = pack_class(info)
    with open(filename, "wb", _BUFFERING) as fd:
        fd.write(data)


#
# The end.
