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
The JVM instruction set, and the functions to turn the bytes of a
Code attribute into a sequence of instructions and back again.

References
----------
* https://docs.oracle.com/javase/specs/jvms/se11/html/jvms-6.html
* https://docs.oracle.com/javase/specs/jvms/se11/html/jvms-7.html

:license: LGPL v.3
"""


from collections import namedtuple
from functools import partial

from .errors import RangeError, StructuralError, UnknownOpcodeError
from .pack import compile_struct, pack, UnpackException


__all__ = [
    "Instruction",
    "get_opcode_by_name", "get_opname_by_code",
    "get_arg_format", "has_const_arg", "is_branch",
    "disassemble", "assemble", "instruction_text",
]


# the op table itself, keyed by both name and value
__OPTABLE = {}

# mnemonics for the op tuples
_OPINDEX_NAME = 0
_OPINDEX_VAL = 1
_OPINDEX_UNPACK = 2
_OPINDEX_PACK = 3
_OPINDEX_CONST = 4
_OPINDEX_BRANCH = 5


# pylint: disable=C0103
_struct_B = compile_struct(">B")
_struct_i = compile_struct(">i")
_struct_ii = compile_struct(">ii")
_struct_iii = compile_struct(">iii")
_struct_BH = compile_struct(">BH")
_struct_BHh = compile_struct(">BHh")


# array type codes used by newarray
_ARRAY_TYPES = {
    4: "boolean", 5: "char", 6: "float", 7: "double",
    8: "byte", 9: "short", 10: "int", 11: "long",
}


class Instruction(namedtuple("Instruction", ("opcode", "args"))):
    """
    A single decoded instruction: the opcode value and a tuple of its
    operands. The offset an instruction was found at is kept beside
    it, not in it, see `disassemble`
    """

    __slots__ = ()


    def __new__(cls, opcode, args=()):
        return super(Instruction, cls).__new__(cls, opcode, tuple(args))


    @property
    def name(self):
        return get_opname_by_code(self.opcode)


    def __repr__(self):
        if self.args:
            return "Instruction(%s, %r)" % (self.name, self.args)
        else:
            return "Instruction(%s)" % self.name


def _op(name, val, fmt=None, const=False, branch=False):
    """
    provides sensible defaults for a code, and registers it with the
    __OPTABLE for lookup.
    """

    # fmt can either be a str representing the struct of the
    # operands, or a pair of (unpack, pack) callables for the
    # variable-length instructions.
    if fmt is None:
        unpacker = packer = None
    elif isinstance(fmt, str):
        sfmt = compile_struct(fmt)
        unpacker = partial(_unpack, sfmt)
        packer = partial(_pack, sfmt)
    else:
        unpacker, packer = fmt

    operand = (name, val, unpacker, packer, const, branch)

    assert name not in __OPTABLE
    assert val not in __OPTABLE

    __OPTABLE[name] = operand
    __OPTABLE[val] = operand

    return val


def _lookup(code):
    try:
        return __OPTABLE[code]
    except KeyError:
        raise KeyError("unknown opcode %r" % (code,))


def get_opcode_by_name(name):
    """
    get the integer opcode by its name
    """

    return _lookup(name.lower())[_OPINDEX_VAL]


def get_opname_by_code(code):
    """
    get the name of an opcode
    """

    return _lookup(code)[_OPINDEX_NAME]


def get_arg_format(code):
    """
    get the unpacking function for the arguments to this opcode, or
    None if it takes no arguments
    """

    return _lookup(code)[_OPINDEX_UNPACK]


def has_const_arg(code):
    """
    whether the first argument of this opcode is a constant pool index
    """

    return _lookup(code)[_OPINDEX_CONST]


def is_branch(code):
    """
    whether the arguments of this opcode are jump offsets relative to
    the instruction's own offset
    """

    return _lookup(code)[_OPINDEX_BRANCH]


def _unpack(struct, bc, offset=0):
    """
    returns the unpacked data tuple, and the next offset past the
    unpacked data
    """

    avail = len(bc) - offset
    if avail < struct.size:
        raise UnpackException(struct.format, struct.size, avail, offset)

    return struct.unpack_from(bc, offset), offset + struct.size


def _pack(struct, packer, args):
    packer.pack_struct(struct, *args)


def _padding(offset):
    # switch operands start on a four byte boundary, counted from the
    # start of the code
    return (4 - (offset % 4)) % 4


def _unpack_padding(bc, offset):
    pad = _padding(offset)
    if len(bc) - offset < pad:
        raise UnpackException(None, pad, len(bc) - offset, offset)
    return offset + pad


def _unpack_lookupswitch(bc, offset):
    """
    function for unpacking the lookupswitch op arguments
    """

    offset = _unpack_padding(bc, offset)

    (default, npairs), offset = _unpack(_struct_ii, bc, offset)
    if npairs < 0:
        raise StructuralError("negative lookupswitch pair count %i"
                              % npairs, offset)

    switches = list()
    for _index in range(npairs):
        pair, offset = _unpack(_struct_ii, bc, offset)
        switches.append(pair)

    return (default, tuple(switches)), offset


def _pack_lookupswitch(packer, args):
    default, switches = args

    packer.write(bytes(_padding(packer.offset)))
    packer.pack_struct(_struct_ii, default, len(switches))
    for match, jump in switches:
        packer.pack_struct(_struct_ii, match, jump)


def _unpack_tableswitch(bc, offset):
    """
    function for unpacking the tableswitch op arguments
    """

    offset = _unpack_padding(bc, offset)

    (default, low, high), offset = _unpack(_struct_iii, bc, offset)
    if high < low:
        raise StructuralError("tableswitch high %i below low %i"
                              % (high, low), offset)

    joffs = list()
    for _index in range((high - low) + 1):
        (j,), offset = _unpack(_struct_i, bc, offset)
        joffs.append(j)

    return (default, low, high, tuple(joffs)), offset


def _pack_tableswitch(packer, args):
    default, low, high, joffs = args

    if len(joffs) != (high - low) + 1:
        raise RangeError("tableswitch %i to %i needs %i offsets, has %i"
                         % (low, high, (high - low) + 1, len(joffs)))

    packer.write(bytes(_padding(packer.offset)))
    packer.pack_struct(_struct_iii, default, low, high)
    for jump in joffs:
        packer.pack_struct(_struct_i, jump)


def _unpack_wide(bc, offset):
    """
    unpacker for wide ops. The args are the widened opcode, its local
    variable index, and for iinc the increment
    """

    (code,), _ = _unpack(_struct_B, bc, offset)

    if code == OP_iinc:
        return _unpack(_struct_BHh, bc, offset)

    elif code in _WIDENABLE:
        return _unpack(_struct_BH, bc, offset)

    else:
        raise StructuralError("opcode 0x%02x cannot follow wide" % code,
                              offset)


def _pack_wide(packer, args):
    code = args[0]

    if code == OP_iinc:
        packer.pack_struct(_struct_BHh, *args)

    elif code in _WIDENABLE:
        packer.pack_struct(_struct_BH, *args)

    else:
        raise RangeError("opcode 0x%02x cannot follow wide" % code, code)


def _disassemble_iter(bytecode):
    offset = 0
    end = len(bytecode)

    while offset < end:
        orig_offset = offset

        code = bytecode[offset]
        offset += 1

        op = __OPTABLE.get(code)
        if op is None:
            raise UnknownOpcodeError(code, orig_offset)

        args = tuple()
        fmt = op[_OPINDEX_UNPACK]
        if fmt:
            args, offset = fmt(bytecode, offset)

        yield (orig_offset, Instruction(code, args))


def disassemble(bytecode):
    """
    Disassembles Java bytecode into a tuple of (offset, Instruction)
    pairs. The offsets are absolute within bytecode, and the
    instructions cover all of it with no gaps.

    Raises UnknownOpcodeError at the first byte that isn't an opcode,
    and UnpackException if the operands of the last instruction run
    off the end.

    :type bytecode: bytes
    """

    return tuple(_disassemble_iter(bytecode))


def assemble(instructions):
    """
    The inverse of disassemble. Accepts a sequence of either
    Instruction instances or (offset, Instruction) pairs, and returns
    the bytecode. When offsets are given, they must match where each
    instruction lands.
    """

    packer = pack()

    for item in instructions:
        if isinstance(item, Instruction):
            inst = item
        else:
            offset, inst = item
            if offset != packer.offset:
                raise RangeError("instruction %r expected at offset %i,"
                                 " assembled at %i"
                                 % (inst, offset, packer.offset), offset)

        op = __OPTABLE.get(inst.opcode)
        if op is None:
            raise RangeError("cannot assemble unknown opcode %r"
                             % (inst.opcode,), inst.opcode)

        packer.pack_struct(_struct_B, inst.opcode)

        fmt = op[_OPINDEX_PACK]
        if fmt:
            fmt(packer, inst.args)
        elif inst.args:
            raise RangeError("%s takes no arguments, given %r"
                             % (op[_OPINDEX_NAME], inst.args), inst.args)

    return packer.getvalue()


def instruction_text(instruction, offset):
    """
    javap-like text for an instruction found at offset. Constant pool
    arguments show as #index, and jumps show the absolute target
    rather than the relative offset.
    """

    code, args = instruction
    name = get_opname_by_code(code)

    if not args:
        return name

    if code == OP_tableswitch:
        default, low, high, joffs = args
        lines = ["%-13s { // %i to %i" % (name, low, high)]
        for key, jump in enumerate(joffs, low):
            lines.append("%12i: %i" % (key, offset + jump))
        lines.append("%12s: %i" % ("default", offset + default))
        lines.append("}")
        return "\n".join(lines)

    elif code == OP_lookupswitch:
        default, switches = args
        lines = ["%-13s { // %i" % (name, len(switches))]
        for match, jump in switches:
            lines.append("%12i: %i" % (match, offset + jump))
        lines.append("%12s: %i" % ("default", offset + default))
        lines.append("}")
        return "\n".join(lines)

    elif code == OP_wide:
        widened = get_opname_by_code(args[0])
        rest = ", ".join(str(arg) for arg in args[1:])
        return "%-13s %s %s" % (name, widened, rest)

    elif is_branch(code):
        return "%-13s %i" % (name, offset + args[0])

    elif code == OP_newarray:
        return "%-13s %s" % (name, _ARRAY_TYPES.get(args[0], args[0]))

    elif has_const_arg(code):
        text = "%-13s #%i" % (name, args[0])
        if code in (OP_invokeinterface, OP_multianewarray):
            text += ",  %i" % args[1]
        elif code == OP_invokedynamic:
            text += ",  0"
        return text

    else:
        return "%-13s %s" % (name, ", ".join(str(arg) for arg in args))


# And now, the OP codes themselves, in the order of the JVMS opcode
# mnemonics chapter.

# The individual OP_* constants just have the numerical value. The
# rest is just information to get stored in the __OPTABLE

# pylint: disable=C0103

# Constants
OP_nop = _op('nop', 0x00)
OP_aconst_null = _op('aconst_null', 0x01)
OP_iconst_m1 = _op('iconst_m1', 0x02)
OP_iconst_0 = _op('iconst_0', 0x03)
OP_iconst_1 = _op('iconst_1', 0x04)
OP_iconst_2 = _op('iconst_2', 0x05)
OP_iconst_3 = _op('iconst_3', 0x06)
OP_iconst_4 = _op('iconst_4', 0x07)
OP_iconst_5 = _op('iconst_5', 0x08)
OP_lconst_0 = _op('lconst_0', 0x09)
OP_lconst_1 = _op('lconst_1', 0x0a)
OP_fconst_0 = _op('fconst_0', 0x0b)
OP_fconst_1 = _op('fconst_1', 0x0c)
OP_fconst_2 = _op('fconst_2', 0x0d)
OP_dconst_0 = _op('dconst_0', 0x0e)
OP_dconst_1 = _op('dconst_1', 0x0f)
OP_bipush = _op('bipush', 0x10, fmt='>b')
OP_sipush = _op('sipush', 0x11, fmt='>h')
OP_ldc = _op('ldc', 0x12, fmt='>B', const=True)
OP_ldc_w = _op('ldc_w', 0x13, fmt='>H', const=True)
OP_ldc2_w = _op('ldc2_w', 0x14, fmt='>H', const=True)

# Loads
OP_iload = _op('iload', 0x15, fmt='>B')
OP_lload = _op('lload', 0x16, fmt='>B')
OP_fload = _op('fload', 0x17, fmt='>B')
OP_dload = _op('dload', 0x18, fmt='>B')
OP_aload = _op('aload', 0x19, fmt='>B')
OP_iload_0 = _op('iload_0', 0x1a)
OP_iload_1 = _op('iload_1', 0x1b)
OP_iload_2 = _op('iload_2', 0x1c)
OP_iload_3 = _op('iload_3', 0x1d)
OP_lload_0 = _op('lload_0', 0x1e)
OP_lload_1 = _op('lload_1', 0x1f)
OP_lload_2 = _op('lload_2', 0x20)
OP_lload_3 = _op('lload_3', 0x21)
OP_fload_0 = _op('fload_0', 0x22)
OP_fload_1 = _op('fload_1', 0x23)
OP_fload_2 = _op('fload_2', 0x24)
OP_fload_3 = _op('fload_3', 0x25)
OP_dload_0 = _op('dload_0', 0x26)
OP_dload_1 = _op('dload_1', 0x27)
OP_dload_2 = _op('dload_2', 0x28)
OP_dload_3 = _op('dload_3', 0x29)
OP_aload_0 = _op('aload_0', 0x2a)
OP_aload_1 = _op('aload_1', 0x2b)
OP_aload_2 = _op('aload_2', 0x2c)
OP_aload_3 = _op('aload_3', 0x2d)
OP_iaload = _op('iaload', 0x2e)
OP_laload = _op('laload', 0x2f)
OP_faload = _op('faload', 0x30)
OP_daload = _op('daload', 0x31)
OP_aaload = _op('aaload', 0x32)
OP_baload = _op('baload', 0x33)
OP_caload = _op('caload', 0x34)
OP_saload = _op('saload', 0x35)

# Stores
OP_istore = _op('istore', 0x36, fmt='>B')
OP_lstore = _op('lstore', 0x37, fmt='>B')
OP_fstore = _op('fstore', 0x38, fmt='>B')
OP_dstore = _op('dstore', 0x39, fmt='>B')
OP_astore = _op('astore', 0x3a, fmt='>B')
OP_istore_0 = _op('istore_0', 0x3b)
OP_istore_1 = _op('istore_1', 0x3c)
OP_istore_2 = _op('istore_2', 0x3d)
OP_istore_3 = _op('istore_3', 0x3e)
OP_lstore_0 = _op('lstore_0', 0x3f)
OP_lstore_1 = _op('lstore_1', 0x40)
OP_lstore_2 = _op('lstore_2', 0x41)
OP_lstore_3 = _op('lstore_3', 0x42)
OP_fstore_0 = _op('fstore_0', 0x43)
OP_fstore_1 = _op('fstore_1', 0x44)
OP_fstore_2 = _op('fstore_2', 0x45)
OP_fstore_3 = _op('fstore_3', 0x46)
OP_dstore_0 = _op('dstore_0', 0x47)
OP_dstore_1 = _op('dstore_1', 0x48)
OP_dstore_2 = _op('dstore_2', 0x49)
OP_dstore_3 = _op('dstore_3', 0x4a)
OP_astore_0 = _op('astore_0', 0x4b)
OP_astore_1 = _op('astore_1', 0x4c)
OP_astore_2 = _op('astore_2', 0x4d)
OP_astore_3 = _op('astore_3', 0x4e)
OP_iastore = _op('iastore', 0x4f)
OP_lastore = _op('lastore', 0x50)
OP_fastore = _op('fastore', 0x51)
OP_dastore = _op('dastore', 0x52)
OP_aastore = _op('aastore', 0x53)
OP_bastore = _op('bastore', 0x54)
OP_castore = _op('castore', 0x55)
OP_sastore = _op('sastore', 0x56)

# Stack
OP_pop = _op('pop', 0x57)
OP_pop2 = _op('pop2', 0x58)
OP_dup = _op('dup', 0x59)
OP_dup_x1 = _op('dup_x1', 0x5a)
OP_dup_x2 = _op('dup_x2', 0x5b)
OP_dup2 = _op('dup2', 0x5c)
OP_dup2_x1 = _op('dup2_x1', 0x5d)
OP_dup2_x2 = _op('dup2_x2', 0x5e)
OP_swap = _op('swap', 0x5f)

# Math
OP_iadd = _op('iadd', 0x60)
OP_ladd = _op('ladd', 0x61)
OP_fadd = _op('fadd', 0x62)
OP_dadd = _op('dadd', 0x63)
OP_isub = _op('isub', 0x64)
OP_lsub = _op('lsub', 0x65)
OP_fsub = _op('fsub', 0x66)
OP_dsub = _op('dsub', 0x67)
OP_imul = _op('imul', 0x68)
OP_lmul = _op('lmul', 0x69)
OP_fmul = _op('fmul', 0x6a)
OP_dmul = _op('dmul', 0x6b)
OP_idiv = _op('idiv', 0x6c)
OP_ldiv = _op('ldiv', 0x6d)
OP_fdiv = _op('fdiv', 0x6e)
OP_ddiv = _op('ddiv', 0x6f)
OP_irem = _op('irem', 0x70)
OP_lrem = _op('lrem', 0x71)
OP_frem = _op('frem', 0x72)
OP_drem = _op('drem', 0x73)
OP_ineg = _op('ineg', 0x74)
OP_lneg = _op('lneg', 0x75)
OP_fneg = _op('fneg', 0x76)
OP_dneg = _op('dneg', 0x77)
OP_ishl = _op('ishl', 0x78)
OP_lshl = _op('lshl', 0x79)
OP_ishr = _op('ishr', 0x7a)
OP_lshr = _op('lshr', 0x7b)
OP_iushr = _op('iushr', 0x7c)
OP_lushr = _op('lushr', 0x7d)
OP_iand = _op('iand', 0x7e)
OP_land = _op('land', 0x7f)
OP_ior = _op('ior', 0x80)
OP_lor = _op('lor', 0x81)
OP_ixor = _op('ixor', 0x82)
OP_lxor = _op('lxor', 0x83)
OP_iinc = _op('iinc', 0x84, fmt='>Bb')

# Conversions
OP_i2l = _op('i2l', 0x85)
OP_i2f = _op('i2f', 0x86)
OP_i2d = _op('i2d', 0x87)
OP_l2i = _op('l2i', 0x88)
OP_l2f = _op('l2f', 0x89)
OP_l2d = _op('l2d', 0x8a)
OP_f2i = _op('f2i', 0x8b)
OP_f2l = _op('f2l', 0x8c)
OP_f2d = _op('f2d', 0x8d)
OP_d2i = _op('d2i', 0x8e)
OP_d2l = _op('d2l', 0x8f)
OP_d2f = _op('d2f', 0x90)
OP_i2b = _op('i2b', 0x91)
OP_i2c = _op('i2c', 0x92)
OP_i2s = _op('i2s', 0x93)

# Comparisons
OP_lcmp = _op('lcmp', 0x94)
OP_fcmpl = _op('fcmpl', 0x95)
OP_fcmpg = _op('fcmpg', 0x96)
OP_dcmpl = _op('dcmpl', 0x97)
OP_dcmpg = _op('dcmpg', 0x98)
OP_ifeq = _op('ifeq', 0x99, fmt='>h', branch=True)
OP_ifne = _op('ifne', 0x9a, fmt='>h', branch=True)
OP_iflt = _op('iflt', 0x9b, fmt='>h', branch=True)
OP_ifge = _op('ifge', 0x9c, fmt='>h', branch=True)
OP_ifgt = _op('ifgt', 0x9d, fmt='>h', branch=True)
OP_ifle = _op('ifle', 0x9e, fmt='>h', branch=True)
OP_if_icmpeq = _op('if_icmpeq', 0x9f, fmt='>h', branch=True)
OP_if_icmpne = _op('if_icmpne', 0xa0, fmt='>h', branch=True)
OP_if_icmplt = _op('if_icmplt', 0xa1, fmt='>h', branch=True)
OP_if_icmpge = _op('if_icmpge', 0xa2, fmt='>h', branch=True)
OP_if_icmpgt = _op('if_icmpgt', 0xa3, fmt='>h', branch=True)
OP_if_icmple = _op('if_icmple', 0xa4, fmt='>h', branch=True)
OP_if_acmpeq = _op('if_acmpeq', 0xa5, fmt='>h', branch=True)
OP_if_acmpne = _op('if_acmpne', 0xa6, fmt='>h', branch=True)

# Control
OP_goto = _op('goto', 0xa7, fmt='>h', branch=True)
OP_jsr = _op('jsr', 0xa8, fmt='>h', branch=True)
OP_ret = _op('ret', 0xa9, fmt='>B')
OP_tableswitch = _op('tableswitch', 0xaa,
                     fmt=(_unpack_tableswitch, _pack_tableswitch))
OP_lookupswitch = _op('lookupswitch', 0xab,
                      fmt=(_unpack_lookupswitch, _pack_lookupswitch))
OP_ireturn = _op('ireturn', 0xac)
OP_lreturn = _op('lreturn', 0xad)
OP_freturn = _op('freturn', 0xae)
OP_dreturn = _op('dreturn', 0xaf)
OP_areturn = _op('areturn', 0xb0)
OP_return = _op('return', 0xb1)

# References
OP_getstatic = _op('getstatic', 0xb2, fmt='>H', const=True)
OP_putstatic = _op('putstatic', 0xb3, fmt='>H', const=True)
OP_getfield = _op('getfield', 0xb4, fmt='>H', const=True)
OP_putfield = _op('putfield', 0xb5, fmt='>H', const=True)
OP_invokevirtual = _op('invokevirtual', 0xb6, fmt='>H', const=True)
OP_invokespecial = _op('invokespecial', 0xb7, fmt='>H', const=True)
OP_invokestatic = _op('invokestatic', 0xb8, fmt='>H', const=True)
OP_invokeinterface = _op('invokeinterface', 0xb9, fmt='>HBB', const=True)
OP_invokedynamic = _op('invokedynamic', 0xba, fmt='>HBB', const=True)
OP_new = _op('new', 0xbb, fmt='>H', const=True)
OP_newarray = _op('newarray', 0xbc, fmt='>B')
OP_anewarray = _op('anewarray', 0xbd, fmt='>H', const=True)
OP_arraylength = _op('arraylength', 0xbe)
OP_athrow = _op('athrow', 0xbf)
OP_checkcast = _op('checkcast', 0xc0, fmt='>H', const=True)
OP_instanceof = _op('instanceof', 0xc1, fmt='>H', const=True)
OP_monitorenter = _op('monitorenter', 0xc2)
OP_monitorexit = _op('monitorexit', 0xc3)

# Extended
OP_wide = _op('wide', 0xc4, fmt=(_unpack_wide, _pack_wide))
OP_multianewarray = _op('multianewarray', 0xc5, fmt='>HB', const=True)
OP_ifnull = _op('ifnull', 0xc6, fmt='>h', branch=True)
OP_ifnonnull = _op('ifnonnull', 0xc7, fmt='>h', branch=True)
OP_goto_w = _op('goto_w', 0xc8, fmt='>i', branch=True)
OP_jsr_w = _op('jsr_w', 0xc9, fmt='>i', branch=True)


# the opcodes which may be modified by a preceding wide
_WIDENABLE = (
    OP_iload, OP_fload, OP_aload, OP_lload, OP_dload,
    OP_istore, OP_fstore, OP_astore, OP_lstore, OP_dstore,
    OP_ret,
)


__all__.extend(sorted(name for name in tuple(globals())
                      if name.startswith("OP_")))
__all__ = tuple(__all__)


#
# The end.
