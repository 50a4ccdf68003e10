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

import logging

from decimal		import Decimal
from typing		import List, Optional, Sequence, Tuple

from web3		import Web3

from .abi		import Abi, AbiError, Argument, AbiType, Kind, Method, unpack_values, split_event_arguments
from .addresses		import AddressDatabase
from .defaults		import ETH_DECIMALS, GWEI_DECIMALS
from .reader		import EthReader, AllNodesFailed, TxInfo, TxStatus
from .results		import AddressResult, ParamResult, TopicResult, LogResult, GnosisResult, TxResult
from .util		import into_bytes

__author__                      = "Perry Kundert"
__email__                       = "perry@dominionrnd.com"
__copyright__                   = "Copyright (c) 2022 Dominion Research & Development Corp."
__license__                     = "Dual License: GPLv3 (or later) and Commercial (see LICENSE)"

log				= logging.getLogger( 'analyzer' )

"""
Explains an Ethereum transaction in human-readable terms: its basic details, and for a contract
call, the method invoked and its parameters, each event log emitted, and (for a Gnosis-style
multisig wallet's submitTransaction) the call it proposes to make.

Every value is rendered to text by its declared ABI type.  Failures to decode some part of a
transaction are accumulated in TxResult.error, without abandoning the rest of the analysis.
"""

GNOSIS_SUBMIT			= 'submitTransaction'
GNOSIS_INPUTS			= ( 'destination', 'value', 'data' )

# Indexed event inputs are shown as their raw topic; dynamic values are only present as their hash
TOPIC				= AbiType( Kind.HASH )


def hexify( data ) -> str:
    return '0x' + into_bytes( data ).hex()


def scaled( amount: int, decimals: int ) -> str:
    """An integer amount in units of 10^-decimals, to 6 decimal places; eg. Wei as Ether."""
    return f"{Decimal( amount ).scaleb( -decimals ):.6f}"


class TxAnalyzer:
    def __init__( self, reader: EthReader, addrdb: Optional[AddressDatabase] = None ):
        self.reader		= reader
        self.addrdb		= addrdb if addrdb is not None else AddressDatabase()

    def address_result( self, address ) -> AddressResult:
        address			= Web3.to_checksum_address( address )
        return AddressResult( address=address, name=self.addrdb.get_name( address ))

    #
    # Rendering decoded values by their declared AbiType
    #
    def param_as_string( self, abi_type: AbiType, value ) -> str:
        """Arrays (fixed or dynamic) are rendered one numbered element per line; an empty one as ''."""
        if abi_type.kind in ( Kind.ARRAY, Kind.SLICE ):
            return "\n".join(
                f"{i}. {self.param_as_string( abi_type.elem, v )}"
                for i,v in enumerate( value )
            )
        return self._non_array_param_as_string( abi_type, value )

    def _non_array_param_as_string( self, abi_type: AbiType, value ) -> str:
        kind			= abi_type.kind
        if kind is Kind.STRING:
            return value
        if kind is Kind.BOOL:
            return 'true' if value else 'false'
        if kind in ( Kind.INT, Kind.UINT ):
            return f"{value} (0x{value:x})"
        if kind is Kind.ADDRESS:
            address		= Web3.to_checksum_address( value )
            return f"{address} - ({self.addrdb.get_name( address )})"
        if kind in ( Kind.HASH, Kind.BYTES, Kind.FUNCTION ):
            return hexify( value )
        if kind is Kind.FIXED_BYTES:
            return hexify( bytes( value ).ljust( abi_type.size, b'\0' ))
        return str( value )

    def params( self, inputs: Sequence[Argument], values: Sequence ) -> List[ParamResult]:
        return [
            ParamResult(
                name	= a.name,
                type	= str( a.type ),
                value	= self.param_as_string( a.type, v ),
            )
            for a,v in zip( inputs, values )
        ]

    #
    # Decoding calls and logs
    #
    @staticmethod
    def decode_call( abi: Abi, data: bytes ) -> Tuple[Method,List]:
        method			= abi.method_by_id( data )
        return method, unpack_values( method.inputs, data[4:] )

    def analyze_method_call( self, abi: Abi, data ) -> Tuple[str,List[ParamResult]]:
        method,values		= self.decode_call( abi, into_bytes( data ))
        return method.name, self.params( method.inputs, values )

    def analyze_log( self, abi: Abi, entry ) -> LogResult:
        """Decode one receipt log: topics[0] identifies the Event; the remaining topics are its
        indexed inputs (shown raw, as they may be hashes of dynamic values), and its non-indexed
        inputs are unpacked from the log's data.

        """
        topics			= [ into_bytes( t ) for t in entry['topics'] ]
        if not topics:
            raise AbiError( "anonymous log has no event id topic" )
        event			= abi.event_by_id( topics[0] )
        indexed,non_indexed	= split_event_arguments( event.inputs )
        if len( topics ) - 1 != len( indexed ):
            raise AbiError(
                f"event {event.name} has {len( indexed )} indexed inputs, but log has {len( topics ) - 1} topics"
            )
        values			= unpack_values( non_indexed, into_bytes( entry.get( 'data' ) or b'' ))
        return LogResult(
            name	= event.name,
            topics	= [
                TopicResult( name=a.name, value=self.param_as_string( TOPIC, t ))
                for a,t in zip( indexed, topics[1:] )
            ],
            data	= self.params( non_indexed, values ),
        )

    #
    # Multisig wallets
    #
    @staticmethod
    def is_gnosis_multisig( method: Method ) -> bool:
        """Compares only the method and parameter names against the standard Gnosis multisig
        wallet's submitTransaction; no bytecode is checked."""
        return (
            method.name == GNOSIS_SUBMIT
            and tuple( a.name for a in method.inputs ) == GNOSIS_INPUTS
        )

    def set_gnosis_multisig_init_data( self, values: Sequence, result: TxResult ):
        """Decode the call (destination, value, data) that a multisig submitTransaction proposes."""
        destination,_,data	= values
        result.gnosis_init	= GnosisResult( contract=self.address_result( destination ))
        try:
            abi			= self.reader.get_abi( destination )
        except Exception as exc:
            result.add_error( f"Cannot get abi of the contract: {exc}" )
            return
        try:
            method		= abi.method_by_id( data )
        except AbiError as exc:
            result.add_error( f"Cannot get corresponding method from the ABI: {exc}" )
            return
        result.gnosis_init.method = method.name
        try:
            params		= unpack_values( method.inputs, data[4:] )
        except AbiError as exc:
            result.add_error( f"Cannot parse params: {exc}" )
            return
        result.gnosis_init.params = self.params( method.inputs, params )

    #
    # Transactions
    #
    def set_basic_tx_info( self, tx, result: TxResult ):
        result.from_		= self.address_result( tx['from'] )
        if tx.get( 'to' ):
            result.to		= self.address_result( tx['to'] )
        result.value		= scaled( tx['value'], ETH_DECIMALS )
        result.nonce		= str( tx['nonce'] )
        result.gas_price	= scaled( tx['gasPrice'], GWEI_DECIMALS )
        result.gas_limit	= str( tx['gas'] )

    def analyze_contract_tx( self, txinfo: TxInfo, abi: Abi, result: TxResult ):
        tx			= txinfo.tx
        result.contract		= self.address_result( tx['to'] )
        try:
            method,values	= self.decode_call( abi, into_bytes( tx.get( 'input' ) or b'' ))
        except AbiError as exc:
            result.add_error( f"Cannot analyze the method call: {exc}" )
            return
        result.method		= method.name
        result.params		= self.params( method.inputs, values )

        for i,entry in enumerate( ( txinfo.receipt or {} ).get( 'logs' ) or [] ):
            try:
                result.logs.append( self.analyze_log( abi, entry ))
            except AbiError as exc:
                log.info( f"Log {i} of {result.hash}: {exc}" )
                result.add_error( f"Cannot analyze log {i}: {exc}" )
                result.logs.append( LogResult( name='' ))		# Keeps logs aligned w/ the receipt's

        if self.is_gnosis_multisig( method ):
            self.set_gnosis_multisig_init_data( values, result )

    def analyze_offline( self, txinfo: TxInfo, abi: Optional[Abi], is_contract: bool, tx_hash=None ) -> TxResult:
        """Analyze an already fetched transaction (and its contract's ABI, if is_contract).  Only a
        mined (done or reverted) transaction has its details analyzed.

        """
        tx			= txinfo.tx
        if tx_hash is None and tx is not None:
            tx_hash		= hexify( tx['hash'] )
        result			= TxResult( hash=tx_hash or '', status=txinfo.status.value )
        if txinfo.status not in ( TxStatus.Done, TxStatus.Reverted ):
            return result
        self.set_basic_tx_info( tx, result )
        if not tx.get( 'to' ):
            result.tx_type	= 'contract creation'
        elif not is_contract:
            result.tx_type	= 'normal'
        else:
            result.tx_type	= 'contract call'
            self.analyze_contract_tx( txinfo, abi, result )
        return result

    def analyze( self, tx_hash ) -> TxResult:
        """Fetch and analyze a transaction.  Failing to read the transaction, its destination's
        code or its contract's ABI yields a TxResult describing only which step failed.

        """
        try:
            txinfo		= self.reader.tx_info_from_hash( tx_hash )
        except AllNodesFailed as exc:
            return TxResult( hash=tx_hash, status=TxStatus.Error.value, error=f"getting tx info failed: {exc}" )
        if txinfo.status not in ( TxStatus.Done, TxStatus.Reverted ) or not txinfo.tx.get( 'to' ):
            return self.analyze_offline( txinfo, None, False, tx_hash=tx_hash )

        to			= txinfo.tx['to']
        try:
            code		= self.reader.get_code( to )
        except AllNodesFailed as exc:
            return TxResult( hash=tx_hash, status=TxStatus.Error.value, error=f"checking tx type failed: {exc}" )
        if not code:
            return self.analyze_offline( txinfo, None, False, tx_hash=tx_hash )
        try:
            abi			= self.reader.get_abi( to )
        except Exception as exc:
            return TxResult( hash=tx_hash, status=TxStatus.Error.value, error=f"Cannot get abi of the contract: {exc}" )
        return self.analyze_offline( txinfo, abi, True, tx_hash=tx_hash )
