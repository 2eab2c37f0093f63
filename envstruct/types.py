"""
Width-carrying numeric types for schema fields.

Python has one `int` and one `float`; these NewTypes let a field declare the
bit width the raw value must fit. At runtime they are plain ints/floats.

    port: Annotated[Uint16, Env("PORT,default=8080")]
"""

from typing import NewType

Int = NewType("Int", int)
Int8 = NewType("Int8", int)
Int16 = NewType("Int16", int)
Int32 = NewType("Int32", int)
Int64 = NewType("Int64", int)

Uint = NewType("Uint", int)
Uint8 = NewType("Uint8", int)
Uint16 = NewType("Uint16", int)
Uint32 = NewType("Uint32", int)
Uint64 = NewType("Uint64", int)

Float32 = NewType("Float32", float)
Float64 = NewType("Float64", float)

# Same objects as Uint8 / Int32; use type=byte / type=rune to read a character
# instead of a number.
Byte = Uint8
Rune = Int32
