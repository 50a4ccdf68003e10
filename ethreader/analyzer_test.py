import json

import eth_abi
import pytest

from web3		import Web3

from . import explorer
from .abi		import Abi, AbiError, AbiType, Argument, Method, ERC20_ABI, erc20_abi
from .abi_test		import MULTISIG_ABI
from .addresses		import AddressDatabase
from .analyzer		import TxAnalyzer
from .node		import TransactionNotFound
from .reader		import EthReader, TxInfo, TxStatus
from .reader_test	import FakeNode
from .results		import LogResult, ParamResult, TopicResult

ALICE				= "0x" + "a1" * 20
BOB				= "0x" + "b0" * 20
TOKEN				= "0x" + "70" * 20
WALLET				= "0x" + "3a" * 20
TX_HASH				= "0x" + "5e" * 32


def checksum( address ):
    return Web3.to_checksum_address( address )


def addrdb():
    return AddressDatabase( { ALICE: "Alice", checksum( TOKEN ): "Token" } )


def topic( address ):
    return b'\0' * 12 + bytes.fromhex( address[2:] )


def chain( tx=None, receipt=None, code=b'', fail=() ):
    """A reader w/ a single node, knowing of (at most) one transaction."""
    def result( what, *args ):
        if what in fail:
            return IOError( f"{what} failed" )
        answer			= dict(
            transaction_by_hash	= tx and ( tx, False ),
            transaction_receipt	= receipt,
            get_code		= code,
        )[what]
        if answer is None:
            return TransactionNotFound( f"Transaction with hash: {args[0]} not found." )
        return answer
    return EthReader( { 'n': FakeNode( 'n', result=result ) } )


@pytest.fixture
def abis( monkeypatch ):
    known			= {
        TOKEN.lower():	json.dumps( ERC20_ABI ),
        WALLET.lower():	json.dumps( MULTISIG_ABI ),
    }

    def abi_string( chain, address ):
        assert address.lower() in known, \
            f"Contract source code not verified: {address}"
        return known[address.lower()]

    monkeypatch.setattr( explorer, 'abi_string', abi_string )
    return known


def transaction( to, value=0, data=b'', **kwds ):
    tx				= dict(
        hash		= bytes.fromhex( TX_HASH[2:] ),
        blockNumber	= 15_000_000,
        nonce		= 7,
        gas		= 21000,
        gasPrice	= 20 * 10 ** 9,
        value		= value,
        input		= data,
        to		= to and checksum( to ),
        **kwds
    )
    tx.setdefault( 'from', checksum( ALICE ))
    return tx


def test_param_as_string():
    ta				= TxAnalyzer( chain(), addrdb() )

    assert ta.param_as_string( AbiType.parse( 'address[]' ), ( ALICE, BOB )) == "\n".join( [
        f"0. {checksum( ALICE )} - (Alice)",
        f"1. {checksum( BOB )} - ()",
    ] )
    assert ta.param_as_string( AbiType.parse( 'address[]' ), () ) == ''
    assert ta.param_as_string( AbiType.parse( 'uint256[2][]' ), ( (1, 2), (3, 4) )) == "\n".join( [
        "0. 0. 1 (0x1)",
        "1. 2 (0x2)",
        "1. 0. 3 (0x3)",
        "1. 4 (0x4)",
    ] )

    assert ta.param_as_string( AbiType.parse( 'uint256' ), 255 ) == "255 (0xff)"
    assert ta.param_as_string( AbiType.parse( 'int8' ), -5 ) == "-5 (0x-5)"
    assert ta.param_as_string( AbiType.parse( 'bool' ), True ) == "true"
    assert ta.param_as_string( AbiType.parse( 'bool' ), False ) == "false"
    assert ta.param_as_string( AbiType.parse( 'string' ), "Hello" ) == "Hello"
    assert ta.param_as_string( AbiType.parse( 'bytes' ), b'\xde\xad' ) == "0xdead"
    assert ta.param_as_string( AbiType.parse( 'bytes32' ), b'\x01' * 32 ) == "0x" + "01" * 32
    # Fixed bytes are always shown at their full declared width
    assert ta.param_as_string( AbiType.parse( 'bytes4' ), b'\x01\x02' ) == "0x01020000"
    assert ta.param_as_string( AbiType.parse( 'address' ), ALICE ) == f"{checksum( ALICE )} - (Alice)"


def test_analyze_method_call():
    ta				= TxAnalyzer( chain(), addrdb() )
    erc20			= erc20_abi()
    name,params			= ta.analyze_method_call( erc20, erc20.encode_call( 'transfer', checksum( BOB ), 1000 ))
    assert name == 'transfer'
    assert params == [
        ParamResult( name='to', type='address', value=f"{checksum( BOB )} - ()" ),
        ParamResult( name='amount', type='uint256', value="1000 (0x3e8)" ),
    ]
    with pytest.raises( AbiError ):
        ta.analyze_method_call( erc20, "0xdeadbeef" )


def test_analyze_method_call_array():
    ta				= TxAnalyzer( chain(), addrdb() )
    owners			= Abi.from_json( [ dict(
        name		= 'setOwners',
        type		= 'function',
        inputs		= [ dict( name='owners', type='address[]' ) ],
        outputs		= [],
    ) ] )
    name,params			= ta.analyze_method_call( owners, owners.encode_call( 'setOwners', [ checksum( ALICE ), checksum( BOB ) ] ))
    assert name == 'setOwners'
    assert params == [
        ParamResult( name='owners', type='address[]', value="\n".join( [
            f"0. {checksum( ALICE )} - (Alice)",
            f"1. {checksum( BOB )} - ()",
        ] )),
    ]
    name,params			= ta.analyze_method_call( owners, owners.encode_call( 'setOwners', [] ))
    assert params == [ ParamResult( name='owners', type='address[]', value='' ) ]


def test_analyze_log():
    ta				= TxAnalyzer( chain(), addrdb() )
    erc20			= erc20_abi()
    transfer			= dict(
        address		= checksum( TOKEN ),
        topics		= [ erc20.events['Transfer'].id, topic( ALICE ), topic( BOB ) ],
        data		= eth_abi.encode( [ 'uint256' ], [ 1000 ] ),
    )
    lr				= ta.analyze_log( erc20, transfer )
    assert lr.name == 'Transfer'
    assert lr.topics == [
        TopicResult( name='from', value="0x" + "00" * 12 + ALICE[2:] ),
        TopicResult( name='to', value="0x" + "00" * 12 + BOB[2:] ),
    ]
    assert lr.data == [ ParamResult( name='value', type='uint256', value="1000 (0x3e8)" ) ]

    with pytest.raises( AbiError, match="indexed inputs" ):
        ta.analyze_log( erc20, dict( transfer, topics=transfer['topics'][:2] ))
    with pytest.raises( AbiError, match="no event with id" ):
        ta.analyze_log( erc20, dict( transfer, topics=[ b'\x99' * 32 ] ))
    with pytest.raises( AbiError ):
        ta.analyze_log( erc20, dict( transfer, topics=[] ))


def test_is_gnosis_multisig():
    def method( name, *inputs ):
        return Method( name, [ Argument( n, AbiType.parse( t )) for n,t in inputs ] )

    submit			= ( ('destination', 'address'), ('value', 'uint256'), ('data', 'bytes') )
    assert TxAnalyzer.is_gnosis_multisig( method( 'submitTransaction', *submit ))
    assert TxAnalyzer.is_gnosis_multisig( Abi.from_json( MULTISIG_ABI ).methods['submitTransaction'] )
    assert not TxAnalyzer.is_gnosis_multisig( method( 'submitTx', *submit ))
    assert not TxAnalyzer.is_gnosis_multisig( method( 'submitTransaction', submit[1], submit[0], submit[2] ))
    assert not TxAnalyzer.is_gnosis_multisig( method( 'submitTransaction', *submit[:2] ))
    assert not TxAnalyzer.is_gnosis_multisig( method( 'submitTransaction', *submit, ('nonce', 'uint256') ))


def test_analyze_normal():
    tx				= transaction( BOB, value=1_500_000_000_000_000_000 )
    ta				= TxAnalyzer( chain( tx, dict( status=1, logs=[] )), addrdb() )
    result			= ta.analyze( TX_HASH )
    assert result.hash == TX_HASH
    assert result.status == 'done'
    assert result.tx_type == 'normal'
    assert result.value == "1.500000"
    assert result.gas_price == "20.000000"
    assert result.nonce == "7"
    assert result.gas_limit == "21000"
    assert result.from_.address == checksum( ALICE )
    assert result.from_.name == "Alice"
    assert result.to.address == checksum( BOB )
    assert result.to.name == ""
    assert result.method == ''
    assert result.error == ''

    as_dict			= result.as_dict()
    assert as_dict['from'] == dict( address=checksum( ALICE ), name="Alice" )
    assert 'from_' not in as_dict
    assert json.loads( json.dumps( as_dict ))['value'] == "1.500000"


def test_analyze_status():
    tx				= transaction( BOB )
    # Pre-Byzantium receipts carry a state root instead of a status
    result			= TxAnalyzer( chain( tx, dict( root=b'\x42' * 32, status=0, logs=[] ))).analyze( TX_HASH )
    assert result.status == 'done'
    assert result.tx_type == 'normal'

    result			= TxAnalyzer( chain( tx, dict( status=0, logs=[] ))).analyze( TX_HASH )
    assert result.status == 'reverted'
    assert result.tx_type == 'normal'

    result			= TxAnalyzer( chain( None )).analyze( TX_HASH )
    assert result.status == 'notfound'
    assert result.hash == TX_HASH
    assert result.tx_type == ''

    # Pending; no receipt yet
    result			= TxAnalyzer( chain( tx, None )).analyze( TX_HASH )
    assert result.status == 'pending'
    assert result.from_ is None

    result			= TxAnalyzer( chain( tx, fail=( 'transaction_by_hash', ))).analyze( TX_HASH )
    assert result.status == 'error'
    assert result.error.startswith( "getting tx info failed: Couldn't read from any nodes: 1. n: " )

    result			= TxAnalyzer( chain( tx, dict( status=1, logs=[] ), fail=( 'get_code', ))).analyze( TX_HASH )
    assert result.error.startswith( "checking tx type failed: " )

    creation			= transaction( None, contractAddress=checksum( TOKEN ))
    result			= TxAnalyzer( chain( creation, dict( status=1, logs=[] ))).analyze( TX_HASH )
    assert result.tx_type == 'contract creation'
    assert result.to is None


def test_analyze_contract_call( abis ):
    erc20			= erc20_abi()
    tx				= transaction( TOKEN, data=erc20.encode_call( 'transfer', checksum( BOB ), 1000 ))
    receipt			= dict( status=1, logs=[
        dict(
            address	= checksum( TOKEN ),
            topics	= [ erc20.events['Transfer'].id, topic( ALICE ), topic( BOB ) ],
            data	= eth_abi.encode( [ 'uint256' ], [ 1000 ] ),
        ),
        dict(
            address	= checksum( TOKEN ),
            topics	= [ b'\x99' * 32 ],
            data	= b'',
        ),
    ] )
    result			= TxAnalyzer( chain( tx, receipt, code=b'\x60\x80' ), addrdb() ).analyze( TX_HASH )
    assert result.tx_type == 'contract call'
    assert result.contract.address == checksum( TOKEN )
    assert result.contract.name == "Token"
    assert result.method == 'transfer'
    assert [ p.name for p in result.params ] == [ 'to', 'amount' ]
    # The undecodable log is reported, but doesn't prevent decoding the others; its empty
    # placeholder keeps each result at the same index as its receipt log
    assert len( result.logs ) == 2
    assert result.logs[0].name == 'Transfer'
    assert result.logs[1] == LogResult( name='' )
    assert "Cannot analyze log 1: no event with id: 0x" + "99" * 32 in result.error
    assert result.gnosis_init is None


def test_analyze_contract_unknown_method( abis ):
    tx				= transaction( TOKEN, data=bytes.fromhex( 'deadbeef' ))
    result			= TxAnalyzer( chain( tx, dict( status=1, logs=[] ), code=b'\x60' )).analyze( TX_HASH )
    assert result.tx_type == 'contract call'
    assert result.error == "Cannot analyze the method call: no method with id: 0xdeadbeef"
    assert result.method == ''


def test_analyze_contract_no_abi( abis ):
    tx				= transaction( BOB, data=bytes.fromhex( 'deadbeef' ))
    result			= TxAnalyzer( chain( tx, dict( status=1, logs=[] ), code=b'\x60' )).analyze( TX_HASH )
    assert result.status == 'error'
    assert result.error.startswith( "Cannot get abi of the contract: Contract source code not verified" )


def test_analyze_multisig( abis ):
    wallet			= Abi.from_json( MULTISIG_ABI )
    inner			= erc20_abi().encode_call( 'transfer', checksum( BOB ), 5 * 10 ** 18 )
    tx				= transaction( WALLET, data=wallet.encode_call( 'submitTransaction', checksum( TOKEN ), 0, inner ))
    result			= TxAnalyzer( chain( tx, dict( status=1, logs=[] ), code=b'\x60' ), addrdb() ).analyze( TX_HASH )
    assert result.error == ''
    assert result.method == 'submitTransaction'
    assert result.params[0] == ParamResult( name='destination', type='address', value=f"{checksum( TOKEN )} - (Token)" )
    assert result.params[2].value == "0x" + inner.hex()
    gnosis			= result.gnosis_init
    assert gnosis.contract.address == checksum( TOKEN )
    assert gnosis.contract.name == "Token"
    assert gnosis.method == 'transfer'
    assert gnosis.params == [
        ParamResult( name='to', type='address', value=f"{checksum( BOB )} - ()" ),
        ParamResult( name='amount', type='uint256', value=f"{5 * 10 ** 18} (0x{5 * 10 ** 18:x})" ),
    ]

    # A destination w/o a verified ABI is reported, leaving the rest of the analysis intact
    tx				= transaction( WALLET, data=wallet.encode_call( 'submitTransaction', checksum( BOB ), 0, inner ))
    result			= TxAnalyzer( chain( tx, dict( status=1, logs=[] ), code=b'\x60' )).analyze( TX_HASH )
    assert result.method == 'submitTransaction'
    assert result.gnosis_init.contract.address == checksum( BOB )
    assert result.gnosis_init.method == ''
    assert result.error.startswith( "Cannot get abi of the contract: " )

    # An embedded call the destination's ABI doesn't know
    tx				= transaction( WALLET, data=wallet.encode_call( 'submitTransaction', checksum( TOKEN ), 0, b'\x01\x02\x03\x04' ))
    result			= TxAnalyzer( chain( tx, dict( status=1, logs=[] ), code=b'\x60' )).analyze( TX_HASH )
    assert result.error == "Cannot get corresponding method from the ABI: no method with id: 0x01020304"


def test_analyze_offline():
    tx				= transaction( BOB, value=10 ** 18 )
    result			= TxAnalyzer( chain() ).analyze_offline( TxInfo( TxStatus.Done, tx, dict( status=1 )), None, False )
    assert result.hash == TX_HASH
    assert result.value == "1.000000"
    assert result.tx_type == 'normal'

    result			= TxAnalyzer( chain() ).analyze_offline( TxInfo( TxStatus.Pending, tx ), None, False )
    assert result.status == 'pending'
    assert result.value == ''


def test_address_database():
    db				= addrdb()
    assert len( db ) == 2
    assert db.get_name( ALICE.upper().replace( '0X', '0x' )) == "Alice"
    assert db.get_name( ALICE[2:] ) == "Alice"
    assert db.get_name( checksum( TOKEN )) == "Token"
    assert db.get_name( BOB ) == ""
    db.register( BOB, "Bob" )
    assert db.get_name( checksum( BOB )) == "Bob"
    with pytest.raises( AssertionError ):
        db.register( "0x1234", "Short" )
