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
The exceptions raised while unpacking or packing class files.

Everything raised on purpose by this package derives from
`ClassfileError`, so a caller only interested in "was this a usable
class" can catch that one type.

:license: LGPL v.3
"""


__all__ = (
    "ClassfileError", "StructuralError",
    "UnknownTagError", "UnknownOpcodeError",
    "EncodingError", "ResolutionError", "AttributeFormatError",
    "RangeError", "DescriptorError",
)


class ClassfileError(Exception):
    """
    base for all of the errors in this package
    """

    pass


class StructuralError(ClassfileError):
    """
    the data doesn't have the shape of a class file: wrong magic, a
    truncated stream, or a length field that overruns its buffer
    """

    def __init__(self, msg, offset=None):
        if offset is not None:
            msg = "%s (at offset %i)" % (msg, offset)
        super(StructuralError, self).__init__(msg)
        self.offset = offset


class UnknownTagError(ClassfileError):
    """
    raised for a constant pool tag that isn't understood. The rest of
    the data cannot be read past such an entry.
    """

    def __init__(self, tag, index=None, offset=None):
        msg = "unknown constant pool tag %r" % tag
        if index is not None:
            msg += " for const #%i" % index
        if offset is not None:
            msg += " (at offset %i)" % offset
        super(UnknownTagError, self).__init__(msg)

        self.tag = tag
        self.index = index
        self.offset = offset


class UnknownOpcodeError(UnknownTagError):
    """
    raised for an instruction byte that isn't a known opcode
    """

    def __init__(self, opcode, offset):
        ClassfileError.__init__(
            self, "unknown opcode 0x%02x at code offset %i" % (opcode, offset))

        self.tag = opcode
        self.opcode = opcode
        self.index = None
        self.offset = offset


class EncodingError(ClassfileError):
    """
    a Utf8 constant that isn't valid even as modified UTF-8
    """

    def __init__(self, data, reason, index=None):
        msg = "invalid modified UTF-8 %r: %s" % (bytes(data), reason)
        if index is not None:
            msg = "const #%i: %s" % (index, msg)
        super(EncodingError, self).__init__(msg)

        self.data = data
        self.index = index


class ResolutionError(ClassfileError, IndexError):
    """
    a constant pool index which is zero, out of range, refers to the
    unusable slot after a long or double, or names a constant of the
    wrong type. Only raised when something asks for that index.
    """

    def __init__(self, msg, index=None):
        super(ResolutionError, self).__init__(msg)
        self.index = index


class AttributeFormatError(ResolutionError):
    """
    an attribute payload which doesn't match the shape its name
    promises, eg. a SourceFile attribute that isn't two bytes long
    """

    def __init__(self, name, expected, actual):
        msg = "%s attribute expected %i bytes, found %i" % \
              (name, expected, actual)
        super(AttributeFormatError, self).__init__(msg)

        self.name = name
        self.expected = expected
        self.actual = actual


class RangeError(ClassfileError, ValueError):
    """
    raised while packing, when an index or value cannot be represented
    in the width the class file format gives it
    """

    def __init__(self, msg, value=None):
        super(RangeError, self).__init__(msg)
        self.value = value


class DescriptorError(ClassfileError, ValueError):
    """
    a field or method descriptor that cannot be read as a sequence of
    types, eg. a class type missing its closing semicolon
    """

    def __init__(self, descriptor, reason):
        msg = "bad type descriptor %r: %s" % (descriptor, reason)
        super(DescriptorError, self).__init__(msg)

        self.descriptor = descriptor
        self.reason = reason


#
# The end.
