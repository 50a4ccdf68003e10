import json

import eth_abi
import pytest

from web3		import Web3

from .abi		import AbiType, AbiError, Kind, Abi, Argument, Method, unpack_values, split_event_arguments, erc20_abi


MULTISIG_ABI			= [
    {"constant":False,"inputs":[{"name":"destination","type":"address"},{"name":"value","type":"uint256"},{"name":"data","type":"bytes"}],"name":"submitTransaction","outputs":[{"name":"transactionId","type":"uint256"}],"type":"function"},
    {"constant":True,"inputs":[],"name":"getOwners","outputs":[{"name":"","type":"address[]"}],"type":"function"},
    {"constant":True,"inputs":[{"name":"","type":"uint256"}],"name":"owners","outputs":[{"name":"","type":"address"}],"type":"function"},
    {"anonymous":False,"inputs":[{"indexed":True,"name":"transactionId","type":"uint256"}],"name":"Submission","type":"event"},
    {"anonymous":True,"inputs":[{"indexed":False,"name":"note","type":"string"}],"name":"Note","type":"event"},
    {"inputs":[{"name":"_owners","type":"address[]"},{"name":"_required","type":"uint256"}],"type":"constructor"},
]  # noqa: E501


def test_abitype_parse():
    assert AbiType.parse( 'uint' ) == AbiType( Kind.UINT, size=256 )
    assert str( AbiType.parse( 'uint' )) == 'uint256'
    assert str( AbiType.parse( 'int8' )) == 'int8'
    assert AbiType.parse( 'bytes4' ) == AbiType( Kind.FIXED_BYTES, size=4 )
    assert AbiType.parse( 'bytes' ).kind is Kind.BYTES
    assert AbiType.parse( 'function' ).codec == 'bytes24'

    nested			= AbiType.parse( 'uint[2][]' )
    assert nested.kind is Kind.SLICE
    assert nested.elem.kind is Kind.ARRAY
    assert nested.elem.size == 2
    assert nested.elem.elem == AbiType( Kind.UINT, size=256 )
    assert str( nested ) == 'uint256[2][]'

    tup				= AbiType.from_json( dict(
        type		= 'tuple[]',
        components	= [ dict( name='who', type='address' ), dict( name='amount', type='uint96' ) ],
    ))
    assert tup.kind is Kind.SLICE and tup.elem.kind is Kind.TUPLE
    assert str( tup ) == '(address,uint96)[]'

    for bad in ( 'uint7', 'uint512', 'bytes33', 'bytes0', 'float', 'tuple', 'fixed128x99', 'address8', 'uint[' ):
        with pytest.raises( AbiError ):
            AbiType.parse( bad )


def test_abitype_canonical():
    """Aliases are spelled canonically, so signatures (and hence selectors) match solc's."""
    assert str( AbiType.parse( 'fixed' )) == 'fixed128x18'
    assert str( AbiType.parse( 'ufixed' )) == 'ufixed128x18'
    assert str( AbiType.parse( 'ufixed64x10' )) == 'ufixed64x10'
    assert AbiType.parse( 'fixed[3]' ) == AbiType( Kind.ARRAY, size=3, elem=AbiType( Kind.FIXED_POINT, text='fixed128x18' ))
    assert str( AbiType.parse( 'byte' )) == 'bytes1'
    assert str( AbiType.parse( 'function[]' )) == 'function[]'

    price			= Method( 'setPrice', [ Argument( 'price', AbiType.parse( 'fixed' )) ] )
    assert price.signature == 'setPrice(fixed128x18)'
    assert price.selector == bytes( Web3.keccak( text='setPrice(fixed128x18)' )[:4] )

    tup				= AbiType.parse( '(address,uint)[2]' )
    assert tup.kind is Kind.ARRAY and tup.size == 2
    assert tup.elem.kind is Kind.TUPLE
    assert tup.elem.components == ( ('', AbiType( Kind.ADDRESS )), ('', AbiType( Kind.UINT, size=256 )) )
    assert str( tup ) == '(address,uint256)[2]'


def test_abi_methods_and_events():
    abi				= Abi.from_json( json.dumps( MULTISIG_ABI ))
    assert sorted( abi.methods ) == [ 'getOwners', 'owners', 'submitTransaction' ]
    assert sorted( abi.events ) == [ 'Note', 'Submission' ]

    submit			= abi.methods['submitTransaction']
    assert submit.signature == 'submitTransaction(address,uint256,bytes)'
    assert submit.selector == bytes.fromhex( 'c6427474' )
    assert abi.method_by_id( submit.selector + b'\x00' * 96 ) is submit

    with pytest.raises( AbiError, match="too short" ):
        abi.method_by_id( b'\xc6\x42' )
    with pytest.raises( AbiError, match="no method with id: 0xdeadbeef" ):
        abi.method_by_id( bytes.fromhex( 'deadbeef' ))

    submission			= abi.events['Submission']
    assert submission.id == bytes( Web3.keccak( text='Submission(uint256)' ))
    assert abi.event_by_id( submission.id ) is submission
    # Anonymous events carry no id topic, so are never matched
    with pytest.raises( AbiError, match="no event with id" ):
        abi.event_by_id( abi.events['Note'].id )

    with pytest.raises( AbiError ):
        Abi.from_json( "Contract source code not verified" )
    with pytest.raises( AbiError ):
        Abi.from_json( '{"not": "a list"}' )


def test_abi_overloads():
    abi				= Abi.from_json( [
        {"inputs":[{"name":"to","type":"address"},{"name":"amount","type":"uint256"}],"name":"transfer","outputs":[],"type":"function"},
        {"inputs":[{"name":"to","type":"address"}],"name":"transfer","outputs":[],"type":"function"},
        {"inputs":[],"name":"transfer","outputs":[],"type":"function"},
    ] )  # noqa: E501
    assert list( abi.methods ) == [ 'transfer', 'transfer0', 'transfer1' ]
    assert abi.methods['transfer0'].signature == 'transfer(address)'
    assert abi.methods['transfer1'].signature == 'transfer()'


def test_abi_encode_unpack():
    abi				= Abi.from_json( MULTISIG_ABI )
    owner			= "0x" + "ab" * 20

    data			= abi.encode_call( 'owners', 3 )
    assert data[:4] == abi.methods['owners'].selector
    assert eth_abi.decode( [ 'uint256' ], data[4:] ) == ( 3, )

    # A lone output is returned bare; eth_abi yields lower-case addresses
    assert abi.unpack( 'owners', eth_abi.encode( [ 'address' ], [ owner ] )) == owner
    assert abi.unpack( 'getOwners', eth_abi.encode( [ 'address[]' ], [ [ owner, owner ] ] )) == ( owner, owner )

    with pytest.raises( AbiError ):
        abi.unpack( 'owners', b'\x00' * 8 )
    with pytest.raises( AbiError ):
        abi.method( 'nonexistent' )


def test_unpack_and_split():
    inputs			= [
        Argument( 'from', AbiType.parse( 'address' ), indexed=True ),
        Argument( 'amount', AbiType.parse( 'uint256' )),
        Argument( 'to', AbiType.parse( 'address' ), indexed=True ),
        Argument( 'memo', AbiType.parse( 'string' )),
    ]
    indexed,non_indexed		= split_event_arguments( inputs )
    assert [ a.name for a in indexed ] == [ 'from', 'to' ]
    assert [ a.name for a in non_indexed ] == [ 'amount', 'memo' ]

    data			= eth_abi.encode( [ 'uint256', 'string' ], [ 12345, "Hello" ] )
    assert unpack_values( non_indexed, data ) == [ 12345, "Hello" ]


def test_erc20_abi():
    erc20			= erc20_abi()
    assert erc20 is erc20_abi()
    assert erc20.methods['balanceOf'].selector == bytes.fromhex( '70a08231' )
    assert erc20.methods['transfer'].selector == bytes.fromhex( 'a9059cbb' )
    assert erc20.events['Transfer'].id.hex() == 'ddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef'
