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
unit tests for python-jvmclass

The sample classes under data/ were assembled by hand, as javac
would have compiled them:

Dummy.java::

    public class Dummy {
    }

IntBox.java::

    public class IntBox {
        private int value;

        public IntBox(int value) {
            this.value = value;
        }

        public int getValue() {
            return value;
        }
    }

HelloWorld.java::

    public class HelloWorld {
        public static void main(String[] args) {
            System.out.println("Hello, World!");
        }
    }

license: LGPL v.3
"""


import os

import jvmclass as jc


def get_data_fn(which):
    return os.path.join(os.path.dirname(__file__), "data", which)


def get_class_fn(which):
    return get_data_fn(which + ".class")


def get_class_data(which):
    with open(get_class_fn(which), "rb") as fd:
        return fd.read()


def load(which):
    fn = get_class_fn(which)
    return jc.unpack_classfile(fn)


def build_member(cpool, name_ref, descriptor_ref, attribs=(),
                 is_method=True, access_flags=jc.ACC_PUBLIC):
    """
    a JavaMemberInfo populated in memory rather than unpacked
    """

    member = jc.JavaMemberInfo(cpool, is_method=is_method)
    member.access_flags = access_flags
    member.name_ref = name_ref
    member.descriptor_ref = descriptor_ref
    member.attribs = jc.JavaAttributes(cpool, attribs)
    return member


def build_class(cpool, this_ref, super_ref=0,
                fields=(), methods=(), attribs=(), interfaces=()):
    """
    a JavaClassInfo populated in memory rather than unpacked
    """

    info = jc.JavaClassInfo(cpool)
    info.version = (52, 0)
    info.access_flags = jc.ACC_PUBLIC | jc.ACC_SUPER
    info.this_ref = this_ref
    info.super_ref = super_ref
    info.interfaces = tuple(interfaces)
    info.fields = tuple(fields)
    info.methods = tuple(methods)
    info.attribs = jc.JavaAttributes(cpool, attribs)
    return info


def build_code(cpool, instructions, max_stack=1, max_locals=1,
               attribs=()):
    """
    a JavaCodeInfo with the assembled instructions
    """

    code = jc.JavaCodeInfo(cpool)
    code.max_stack = max_stack
    code.max_locals = max_locals
    code.set_instructions(instructions)
    code.attribs = jc.JavaAttributes(cpool, attribs, depth=1)
    return code


#
# The end.
