#
# Python-ethreader -- Redundant Ethereum node reader and transaction analyzer
#
# Copyright (c) 2022, Dominion Research & Development Corp.
#
# Python-ethreader is free software: you can redistribute it and/or modify it under
# the terms of the GNU General Public License as published by the Free Software
# Foundation, either version 3 of the License, or (at your option) any later
# version.  It is also available under alternative (eg. Commercial) licenses, at
# your option.  See the LICENSE file at the top of the source tree.
#
# Python-ethreader is distributed in the hope that it will be useful, but WITHOUT
# ANY WARRANTY; without even the implied warranty of MERCHANTABILITY or FITNESS
# FOR A PARTICULAR PURPOSE. See the GNU General Public License for more details.
#

from __future__		import annotations

import json
import logging

from dataclasses	import dataclass, field
from enum		import Enum
from typing		import Dict, List, Optional, Sequence, Tuple, Union

import eth_abi

from eth_abi		import grammar
from eth_abi.exceptions	import ABITypeError, ParseError

from web3		import Web3

from .util		import memoize

__author__                      = "Perry Kundert"
__email__                       = "perry@dominionrnd.com"
__copyright__                   = "Copyright (c) 2022 Dominion Research & Development Corp."
__license__                     = "Dual License: GPLv3 (or later) and Commercial (see LICENSE)"

log				= logging.getLogger( 'abi' )

"""
Contract ABI schemas.

An ABI (from solc, or a block explorer) is parsed into Methods and Events, whose Arguments each
carry an AbiType.  The AbiType is a closed set of type tags (Kind), recursing on the element type
for fixed-length ARRAYs and dynamic-length SLICEs, so that anything consuming decoded values (eg.
analyzer.TxAnalyzer.param_as_string) can dispatch on the declared type, instead of on the shape of
whatever value happened to be decoded.

Type strings are parsed (and aliases like uint or fixed canonicalized) by eth_abi's grammar, and the
actual byte packing and unpacking is also done by eth_abi.
"""


class AbiError( ValueError ):
    """An ABI could not be parsed, or some data did not match it."""


class Kind( Enum ):
    INT			= 'int'
    UINT		= 'uint'
    BOOL		= 'bool'
    STRING		= 'string'
    ADDRESS		= 'address'
    HASH		= 'hash'	# Never parsed from a type string; a raw 32-byte value, eg. a log topic
    BYTES		= 'bytes'
    FIXED_BYTES		= 'fixedbytes'
    FUNCTION		= 'function'
    ARRAY		= 'array'	# T[N]
    SLICE		= 'slice'	# T[]
    TUPLE		= 'tuple'
    FIXED_POINT		= 'fixed'


_BASIC_KINDS			= {
    'bool':		Kind.BOOL,
    'string':		Kind.STRING,
    'address':		Kind.ADDRESS,
    'function':		Kind.FUNCTION,
}


def expand_tuples( argument: Dict ) -> str:
    """The type of an ABI JSON input/output, w/ any "tuple" spelled out from its components, eg.
    {"type": "tuple[]", "components": [{"type": "address"}, {"type": "uint96"}]} is "(address,uint96)[]"
    """
    text			= argument['type'].strip()
    if not text.startswith( 'tuple' ):
        return text
    components			= argument.get( 'components' )
    if components is None:
        raise AbiError( f"ABI {text} type requires components" )
    return "(" + ",".join( expand_tuples( c ) for c in components ) + ")" + text[len( 'tuple' ):]


@dataclass( eq=True, frozen=True )      # Makes it hashable
class AbiType:
    """A parsed ABI type.  The size is the bit width of INT/UINT, the byte width of FIXED_BYTES, or
    the element count of an ARRAY.  TUPLE components are (name, AbiType) pairs.

        >>> str( AbiType.parse( 'uint[2][]' ))
        'uint256[2][]'
        >>> AbiType.parse( 'bytes4' ).kind
        <Kind.FIXED_BYTES: 'fixedbytes'>

    """
    kind: Kind
    size: int				= 0
    elem: Optional[AbiType]		= None
    components: Tuple[Tuple[str,AbiType], ...] = ()
    text: str				= ''	# The canonical spelling of a FIXED_POINT type, eg. fixed128x18

    @classmethod
    def parse( cls, text: str, components: Optional[Sequence[Dict]] = None ) -> AbiType:
        """Parse an ABI type string w/ eth_abi's grammar.  An ABI JSON "tuple" type is spelled out
        from its components, which also supply the names of the tuple's members."""
        if components is not None:
            text		= expand_tuples( dict( type=text, components=components ))
        try:
            node		= grammar.parse( text.strip() )
        except ParseError as exc:
            raise AbiError( f"Unrecognized ABI type: {text!r}" ) from exc
        return cls.from_node( node, components )

    @classmethod
    def from_node( cls, node, components: Optional[Sequence[Dict]] = None ) -> AbiType:
        """Adapt an eth_abi.grammar type (w/ any tuple member names from ABI JSON components)."""
        if node.arrlist:
            elem		= cls.from_node( node.item_type, components )
            dims		= node.arrlist[-1]
            if dims:
                return cls( Kind.ARRAY, size=dims[0], elem=elem )
            return cls( Kind.SLICE, elem=elem )
        if isinstance( node, grammar.TupleType ):
            members		= components or [ {} ] * len( node.components )
            return cls( Kind.TUPLE, components=tuple(
                ( m.get( 'name' ) or '', cls.from_node( c, m.get( 'components' )))
                for m,c in zip( members, node.components )
            ))
        if node.base != 'function':
            # eg. uint -> uint256, fixed -> fixed128x18; function stays distinct from its bytes24 encoding
            node		= grammar.parse( grammar.normalize( node.to_type_str() ))
        try:
            node.validate()
        except ABITypeError as exc:
            raise AbiError( f"Invalid ABI type {node.to_type_str()!r}: {exc}" ) from exc
        base,sub		= node.base,node.sub
        if base in ( 'int', 'uint' ):
            return cls( Kind.UINT if base == 'uint' else Kind.INT, size=sub )
        if base == 'bytes':
            if sub is None:
                return cls( Kind.BYTES )
            if not 1 <= sub <= 32:
                raise AbiError( f"Invalid ABI fixed bytes width: {node.to_type_str()}" )
            return cls( Kind.FIXED_BYTES, size=sub )
        if base in ( 'fixed', 'ufixed' ):
            return cls( Kind.FIXED_POINT, text=node.to_type_str() )
        if base in _BASIC_KINDS and sub is None:
            return cls( _BASIC_KINDS[base] )
        raise AbiError( f"Unrecognized ABI type: {node.to_type_str()!r}" )

    @classmethod
    def from_json( cls, argument: Dict ) -> AbiType:
        """From an ABI JSON input/output entry, eg. {"name": "to", "type": "address"}"""
        return cls.parse( argument['type'], components=argument.get( 'components' ))

    def __str__( self ):
        if self.kind in ( Kind.INT, Kind.UINT ):
            return f"{self.kind.value}{self.size}"
        if self.kind is Kind.FIXED_BYTES:
            return f"bytes{self.size}"
        if self.kind is Kind.HASH:
            return "bytes32"
        if self.kind is Kind.ARRAY:
            return f"{self.elem}[{self.size}]"
        if self.kind is Kind.SLICE:
            return f"{self.elem}[]"
        if self.kind is Kind.TUPLE:
            return "(" + ",".join( str( t ) for _,t in self.components ) + ")"
        if self.kind is Kind.FIXED_POINT:
            return self.text
        return self.kind.value

    @property
    def codec( self ) -> str:
        """The type string understood by eth_abi; function pointers are encoded as bytes24."""
        if self.kind is Kind.FUNCTION:
            return "bytes24"
        if self.kind is Kind.ARRAY:
            return f"{self.elem.codec}[{self.size}]"
        if self.kind is Kind.SLICE:
            return f"{self.elem.codec}[]"
        if self.kind is Kind.TUPLE:
            return "(" + ",".join( t.codec for _,t in self.components ) + ")"
        return str( self )


@dataclass
class Argument:
    name: str
    type: AbiType
    indexed: bool		= False

    @classmethod
    def from_json( cls, argument: Dict ) -> Argument:
        return cls(
            name	= argument.get( 'name' ) or '',
            type	= AbiType.from_json( argument ),
            indexed	= bool( argument.get( 'indexed' )),
        )


def unpack_values( arguments: Sequence[Argument], data: bytes ) -> List:
    """Decode data into a list of positional values, one for each argument."""
    try:
        return list( eth_abi.decode( [ a.type.codec for a in arguments ], bytes( data )))
    except Exception as exc:
        raise AbiError(
            f"Cannot unpack {len( data )} bytes as ({', '.join( str( a.type ) for a in arguments )}): {exc}"
        ) from exc


def split_event_arguments( inputs: Sequence[Argument] ) -> Tuple[List[Argument],List[Argument]]:
    """Partition an Event's inputs into the indexed (carried in topics) and non-indexed (packed
    into data), each in declaration order."""
    indexed			= [ a for a in inputs if a.indexed ]
    non_indexed			= [ a for a in inputs if not a.indexed ]
    return indexed, non_indexed


@dataclass
class Method:
    name: str
    inputs: List[Argument]
    outputs: List[Argument]	= field( default_factory=list )
    raw_name: str		= ''	# The Solidity name; differs from .name for overloads

    def __post_init__( self ):
        self.raw_name		= self.raw_name or self.name

    @property
    def signature( self ):
        return f"{self.raw_name}({','.join( str( a.type ) for a in self.inputs )})"

    @property
    def selector( self ) -> bytes:
        return bytes( Web3.keccak( text=self.signature )[:4] )

    def encode( self, *args ) -> bytes:
        """Produce call data: the 4-byte selector followed by the packed arguments."""
        assert len( args ) == len( self.inputs ), \
            f"{self.signature} requires {len( self.inputs )} arguments, not {len( args )}"
        try:
            return self.selector + eth_abi.encode( [ a.type.codec for a in self.inputs ], list( args ))
        except Exception as exc:
            raise AbiError( f"Cannot pack arguments for {self.signature}: {exc}" ) from exc


@dataclass
class Event:
    name: str
    inputs: List[Argument]
    anonymous: bool		= False
    raw_name: str		= ''

    def __post_init__( self ):
        self.raw_name		= self.raw_name or self.name

    @property
    def signature( self ):
        return f"{self.raw_name}({','.join( str( a.type ) for a in self.inputs )})"

    @property
    def id( self ) -> bytes:
        """The 32-byte topic identifying this Event in a log's topics[0]"""
        return bytes( Web3.keccak( text=self.signature ))


def _unique( name, taken ):
    """Overloaded names get a numeric suffix: transfer, transfer0, transfer1, ..."""
    candidate			= name
    suffix			= 0
    while candidate in taken:
        candidate		= f"{name}{suffix}"
        suffix		       += 1
    return candidate


class Abi:
    """A contract's Methods and Events, by name."""

    def __init__( self, methods=None, events=None ):
        self.methods: Dict[str,Method] = dict( methods or {} )
        self.events: Dict[str,Event] = dict( events or {} )

    @classmethod
    def from_json( cls, abi: Union[str,bytes,List[Dict]] ) -> Abi:
        if isinstance( abi, (str,bytes) ):
            try:
                abi		= json.loads( abi )
            except ValueError as exc:
                raise AbiError( f"Invalid ABI JSON: {exc}" ) from exc
        if not isinstance( abi, list ):
            raise AbiError( f"Expected an ABI list of entries, not {type( abi ).__name__}" )
        self			= cls()
        for entry in abi:
            what		= entry.get( 'type', 'function' )
            if what == 'function':
                name		= _unique( entry['name'], self.methods )
                self.methods[name] = Method(
                    name	= name,
                    raw_name	= entry['name'],
                    inputs	= [ Argument.from_json( a ) for a in entry.get( 'inputs' ) or [] ],
                    outputs	= [ Argument.from_json( a ) for a in entry.get( 'outputs' ) or [] ],
                )
            elif what == 'event':
                name		= _unique( entry['name'], self.events )
                self.events[name] = Event(
                    name	= name,
                    raw_name	= entry['name'],
                    inputs	= [ Argument.from_json( a ) for a in entry.get( 'inputs' ) or [] ],
                    anonymous	= bool( entry.get( 'anonymous' )),
                )
            # constructor, fallback, receive and error entries are not needed for reading
        log.debug( f"Parsed ABI w/ {len( self.methods )} methods, {len( self.events )} events" )
        return self

    def method_by_id( self, data: bytes ) -> Method:
        """Find the Method whose selector matches the first 4 bytes of call data."""
        if len( data ) < 4:
            raise AbiError( f"data too short ({len( data )} bytes) for abi method lookup" )
        for method in self.methods.values():
            if method.selector == data[:4]:
                return method
        raise AbiError( f"no method with id: 0x{bytes( data[:4] ).hex()}" )

    def event_by_id( self, topic: bytes ) -> Event:
        for event in self.events.values():
            if not event.anonymous and event.id == topic:
                return event
        raise AbiError( f"no event with id: 0x{bytes( topic ).hex()}" )

    def method( self, name ) -> Method:
        try:
            return self.methods[name]
        except KeyError as exc:
            raise AbiError( f"method '{name}' not found" ) from exc

    def encode_call( self, name, *args ) -> bytes:
        return self.method( name ).encode( *args )

    def unpack( self, name, data: bytes ):
        """Decode the return data of a call to the named method; a lone output is returned bare."""
        method			= self.method( name )
        if not method.outputs:
            return None
        values			= unpack_values( method.outputs, data )
        if len( values ) == 1:
            return values[0]
        return values


ERC20_ABI			= [
    {"anonymous":False,"inputs":[{"indexed":True,"name":"owner","type":"address"},{"indexed":True,"name":"spender","type":"address"},{"indexed":False,"name":"value","type":"uint256"}],"name":"Approval","type":"event"},
    {"anonymous":False,"inputs":[{"indexed":True,"name":"from","type":"address"},{"indexed":True,"name":"to","type":"address"},{"indexed":False,"name":"value","type":"uint256"}],"name":"Transfer","type":"event"},
    {"constant":True,"inputs":[{"name":"owner","type":"address"},{"name":"spender","type":"address"}],"name":"allowance","outputs":[{"name":"","type":"uint256"}],"stateMutability":"view","type":"function"},
    {"constant":False,"inputs":[{"name":"spender","type":"address"},{"name":"amount","type":"uint256"}],"name":"approve","outputs":[{"name":"","type":"bool"}],"stateMutability":"nonpayable","type":"function"},
    {"constant":True,"inputs":[{"name":"account","type":"address"}],"name":"balanceOf","outputs":[{"name":"","type":"uint256"}],"stateMutability":"view","type":"function"},
    {"constant":True,"inputs":[],"name":"decimals","outputs":[{"name":"","type":"uint8"}],"stateMutability":"view","type":"function"},
    {"constant":True,"inputs":[],"name":"name","outputs":[{"name":"","type":"string"}],"stateMutability":"view","type":"function"},
    {"constant":True,"inputs":[],"name":"symbol","outputs":[{"name":"","type":"string"}],"stateMutability":"view","type":"function"},
    {"constant":True,"inputs":[],"name":"totalSupply","outputs":[{"name":"","type":"uint256"}],"stateMutability":"view","type":"function"},
    {"constant":False,"inputs":[{"name":"to","type":"address"},{"name":"amount","type":"uint256"}],"name":"transfer","outputs":[{"name":"","type":"bool"}],"stateMutability":"nonpayable","type":"function"},
    {"constant":False,"inputs":[{"name":"from","type":"address"},{"name":"to","type":"address"},{"name":"amount","type":"uint256"}],"name":"transferFrom","outputs":[{"name":"","type":"bool"}],"stateMutability":"nonpayable","type":"function"},
]  # noqa: E501


@memoize()
def erc20_abi() -> Abi:
    return Abi.from_json( ERC20_ABI )
