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
Utility module for unpacking shapes of binary data from a buffer or
stream, and for packing them back out again.

All of the class file structures are big-endian, so every format
handed to these classes should start with ">".

:license: LGPL v.3
"""


from abc import ABCMeta, abstractmethod
from struct import Struct, error as StructError

from .errors import RangeError, StructuralError


__all__ = (
    "compile_struct", "unpack", "pack",
    "Unpacker", "UnpackException",
    "StreamUnpacker", "BufferUnpacker",
    "Packer", "PackException",
    "StreamPacker", "BufferPacker",
)


# pylint: disable=C0103
_struct_cache = dict()


def compile_struct(fmt, cache=None):
    """
    returns a struct.Struct instance compiled from fmt. If fmt has
    already been compiled, it will return the previously compiled
    Struct instance from the cache.
    """

    if cache is None:
        cache = _struct_cache

    sfmt = cache.get(fmt, None)
    if not sfmt:
        sfmt = Struct(fmt)
        cache[fmt] = sfmt
    return sfmt


class Unpacker(metaclass=ABCMeta):
    """
    Abstract base class for `StreamUnpacker` and `BufferUnpacker`. Use
    the `unpack` function to obtain the correct unpacker instance for
    your data.
    """


    def __enter__(self):
        return self


    def __exit__(self, exc_type, _exc_val, _exc_tb):
        self.close()
        return exc_type is None


    @abstractmethod
    def unpack(self, format_str):  # pragma: no cover
        """
        unpacks the given format_str from the underlying data and returns
        the results. Will raise an UnpackException if there is not
        enough data to satisfy the specified format
        """

        pass


    @abstractmethod
    def unpack_struct(self, struct):  # pragma: no cover
        """
        unpacks the given struct from the underlying data and returns the
        results. Will raise an UnpackException if there is not enough
        data to satisfy the format of the structure
        """

        pass


    @abstractmethod
    def read(self, count):  # pragma: no cover
        """
        read count bytes from the unpacker and return it. Raises an
        UnpackException if there is not enough data in the underlying
        stream.
        """

        pass


    @abstractmethod
    def close(self):  # pragma: no cover
        """
        close this unpacker and release the underlying data
        """

        pass


    def unpack_array(self, fmt):
        """
        reads a count from the unpacker, and unpacks fmt count
        times. Yields a sequence of the unpacked data tuples
        """

        (count,) = self.unpack_struct(_H)
        sfmt = compile_struct(fmt)
        for _i in range(count):
            yield self.unpack_struct(sfmt)


    def unpack_struct_array(self, struct):
        """
        reads a count from the unpacker, and unpacks the precompiled
        struct count times. Yields a sequence of the unpacked data
        tuples
        """

        (count,) = self.unpack_struct(_H)
        for _i in range(count):
            yield self.unpack_struct(struct)


    def unpack_objects(self, atype, *params, **kwds):
        """
        reads a count from the unpacker, and instanciates that many calls
        to atype, with the given params and kwds passed along. Each
        instance then has its unpack method called with this unpacker
        instance passed along. Yields a squence of the unpacked
        instances
        """

        (count,) = self.unpack_struct(_H)
        for _i in range(count):
            obj = atype(*params, **kwds)
            obj.unpack(self)
            yield obj


class BufferUnpacker(Unpacker):
    """
    Unpacker wrapping a bytes or memoryview.
    """

    def __init__(self, data, offset=0):
        super(BufferUnpacker, self).__init__()
        self.data = data
        self.offset = offset


    def _avail(self):
        if self.data:
            return len(self.data) - self.offset
        else:
            return 0


    def unpack(self, fmt):
        """
        unpacks the given fmt from the underlying buffer and returns the
        results. Will raise an UnpackException if there is not enough
        data to satisfy the fmt
        """

        return self.unpack_struct(compile_struct(fmt))


    def unpack_struct(self, struct):
        """
        unpacks the given struct from the underlying buffer and returns
        the results. Will raise an UnpackException if there is not
        enough data to satisfy the format of the structure
        """

        size = struct.size
        offset = self.offset

        avail = self._avail()
        if avail < size:
            raise UnpackException(struct.format, size, avail, offset)

        self.offset = offset + size
        return struct.unpack_from(self.data, offset)


    def read(self, count):
        """
        read count bytes from the underlying buffer and return them as
        bytes. Raises an UnpackException if there is not enough data in
        the underlying buffer.
        """

        offset = self.offset

        avail = self._avail()
        if avail < count:
            raise UnpackException(None, count, avail, offset)

        self.offset = offset + count
        return bytes(self.data[offset:self.offset])


    def remaining(self):
        """
        count of bytes not yet consumed from the buffer
        """

        return self._avail()


    def close(self):
        """
        release the underlying buffer
        """

        self.data = None
        self.offset = 0


class StreamUnpacker(Unpacker):
    """
    Wraps a stream and advances along it while unpacking structures
    from it.

    This class adheres to the context management protocol, so may be
    used in conjunction with the 'with' keyword
    """

    def __init__(self, data):
        super(StreamUnpacker, self).__init__()
        self.data = data
        self.offset = 0


    def unpack(self, fmt):
        """
        unpacks the given fmt from the underlying stream and returns the
        results. Will raise an UnpackException if there is not enough
        data to satisfy the fmt
        """

        return self.unpack_struct(compile_struct(fmt))


    def unpack_struct(self, struct):
        """
        unpacks the given struct from the underlying stream and returns
        the results. Will raise an UnpackException if there is not
        enough data to satisfy the format of the structure
        """

        buff = self._read(struct.format, struct.size)
        return struct.unpack(buff)


    def read(self, count):
        """
        read count bytes from the unpacker and return it. Raises an
        UnpackException if there is not enough data in the underlying
        stream.
        """

        return self._read(None, count)


    def _read(self, fmt, count):
        if not self.data:
            raise UnpackException(fmt, count, 0, self.offset)

        buff = self.data.read(count)
        if len(buff) < count:
            raise UnpackException(fmt, count, len(buff), self.offset)

        self.offset += count
        return buff


    def close(self):
        """
        close this unpacker, and the underlying stream if it supports such
        """

        data = self.data
        self.data = None

        if hasattr(data, "close"):
            data.close()


def unpack(data):
    """
    returns either a BufferUnpacker or StreamUnpacker instance,
    depending upon the type of data. The unpacker supports the managed
    context interface, so may be used eg: `with unpack(my_data) as
    unpacker:`
    """

    if isinstance(data, (bytes, bytearray, memoryview)):
        return BufferUnpacker(data)

    elif hasattr(data, "read"):
        return StreamUnpacker(data)

    else:
        raise TypeError("unpack requires bytes, buffer, or instance"
                        " supporting the read method")


class UnpackException(StructuralError):
    """
    raised when there is not enough data to unpack the expected
    structures
    """

    template = "format %r requires %i bytes, only %i present"


    def __init__(self, fmt, wanted, present, offset=None):
        msg = self.template % (fmt, wanted, present)
        super(UnpackException, self).__init__(msg, offset)

        self.format = fmt
        self.bytes_wanted = wanted
        self.bytes_present = present


class Packer(metaclass=ABCMeta):
    """
    Abstract base class for `StreamPacker` and `BufferPacker`. Use the
    `pack` function to obtain the correct packer instance for your
    destination.
    """


    def __enter__(self):
        return self


    def __exit__(self, exc_type, _exc_val, _exc_tb):
        self.close()
        return exc_type is None


    @abstractmethod
    def write(self, data):  # pragma: no cover
        """
        write the bytes of data verbatim
        """

        pass


    @abstractmethod
    def close(self):  # pragma: no cover
        """
        close this packer and release the underlying destination
        """

        pass


    def pack(self, fmt, *values):
        """
        packs values according to fmt. Raises a PackException if the
        values don't fit the format
        """

        self.pack_struct(compile_struct(fmt), *values)


    def pack_struct(self, struct, *values):
        """
        packs values according to the precompiled struct. Raises a
        PackException if the values don't fit the format
        """

        try:
            data = struct.pack(*values)
        except StructError as se:
            raise PackException(struct.format, values, se)

        self.write(data)


    def pack_array(self, fmt, items):
        """
        writes the count of items, then packs each item (a tuple) with
        fmt. The inverse of `Unpacker.unpack_array`
        """

        items = tuple(items)
        sfmt = compile_struct(fmt)

        self.pack_struct(_H, len(items))
        for item in items:
            self.pack_struct(sfmt, *item)


    def pack_objects(self, objs):
        """
        writes the count of objs, then calls the pack method of each
        with this packer. The inverse of `Unpacker.unpack_objects`
        """

        objs = tuple(objs)

        self.pack_struct(_H, len(objs))
        for obj in objs:
            obj.pack(self)


class BufferPacker(Packer):
    """
    Packer which accumulates everything in memory. Use `getvalue` to
    collect the result.
    """

    def __init__(self):
        super(BufferPacker, self).__init__()
        self.data = bytearray()


    @property
    def offset(self):
        return len(self.data)


    def write(self, data):
        self.data.extend(data)


    def getvalue(self):
        """
        the bytes packed so far
        """

        return bytes(self.data)


    def close(self):
        # keep the data, so getvalue still works after a with block
        pass


class StreamPacker(Packer):
    """
    Packer writing directly to a stream supporting the write method
    """

    def __init__(self, stream):
        super(StreamPacker, self).__init__()
        self.stream = stream
        self.offset = 0


    def write(self, data):
        if self.stream is None:
            raise ValueError("write to a closed packer")

        self.stream.write(data)
        self.offset += len(data)


    def close(self):
        """
        close this packer, and the underlying stream if it supports such
        """

        stream = self.stream
        self.stream = None

        if hasattr(stream, "close"):
            stream.close()


def pack(stream=None):
    """
    returns a StreamPacker writing to stream, or a BufferPacker if no
    stream is given
    """

    if stream is None:
        return BufferPacker()

    elif hasattr(stream, "write"):
        return StreamPacker(stream)

    else:
        raise TypeError("pack requires None or an instance"
                        " supporting the write method")


class PackException(RangeError):
    """
    raised when values can't be represented by the format they're
    being packed with
    """

    template = "format %r cannot pack %r: %s"


    def __init__(self, fmt, values, reason):
        msg = self.template % (fmt, values, reason)
        super(PackException, self).__init__(msg, values)

        self.format = fmt


# We use this one a lot, so let's not bother calling compile_struct
# over and over to get it.
_H = compile_struct(">H")


#
# The end.
