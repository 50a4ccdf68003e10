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

import logging
import os
import threading

from concurrent.futures	import ThreadPoolExecutor, as_completed
from dataclasses	import dataclass
from enum		import Enum
from typing		import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from web3		import Web3

from .			import explorer
from .abi		import Abi, erc20_abi
from .explorer		import Chain, UnsupportedChain, chain_of, chain_name
from .node		import EthereumNode, Web3Node, TransactionNotFound
from .util		import timer, into_bytes
from .defaults		import (
    DEFAULT_ADDRESS, LATEST,
    NODE_URLS, INFURA_API_TESTING,
    FIXED_GAS_PRICE_GWEI, GAS_PRICE_MAXAGE,
)

__author__                      = "Perry Kundert"
__email__                       = "perry@dominionrnd.com"
__copyright__                   = "Copyright (c) 2022 Dominion Research & Development Corp."
__license__                     = "Dual License: GPLv3 (or later) and Commercial (see LICENSE)"

log				= logging.getLogger( 'reader' )


def error_info( errors ):
    """Number each (name, exception), in the order received."""
    return "\n".join(
        f"{i}. {name}: {exc}"
        for i,(name,exc) in enumerate( errors, start=1 )
    )


class AllNodesFailed( RuntimeError ):
    """Every node failed; .errors holds each node's (name, exception), in order of arrival."""
    def __init__( self, errors ):
        self.errors		= list( errors )
        super().__init__( f"Couldn't read from any nodes: {error_info( self.errors )}" )


class TxStatus( Enum ):
    Error		= 'error'
    NotFound		= 'notfound'
    Pending		= 'pending'
    Done		= 'done'
    Reverted		= 'reverted'


@dataclass
class TxInfo:
    status: TxStatus
    tx: Optional[Mapping]	= None
    receipt: Optional[Mapping]	= None


def receipt_status( receipt ) -> TxStatus:
    """Only receipts since the Byzantium fork carry a status; before that, the receipt carried the
    32-byte post-transaction state 'root' instead, and every such mined transaction is considered
    done -- regardless of any status also present.

    """
    root			= receipt.get( 'root' )
    if root and len( into_bytes( root )) == 32:
        return TxStatus.Done
    if receipt.get( 'status' ) == 1:
        return TxStatus.Done
    return TxStatus.Reverted


class GasPriceCache:
    """A recommended gas price (Gwei) fetched at most once per maxage seconds.  The check and any
    refresh happen under one lock, so concurrent callers wait for a single refresh in progress.
    A failed fetch raises, and leaves any previous price and its timestamp untouched.

    """
    def __init__( self, fetch: Callable[[],float], maxage: float = GAS_PRICE_MAXAGE, clock: Callable[[],float] = None ):
        self._fetch		= fetch
        self._maxage		= maxage
        self._clock		= clock or timer
        self._price		= 0.0
        self._timestamp		= 0.0
        self._lock		= threading.Lock()

    def get( self ) -> float:
        with self._lock:
            if not self._price or self._clock() - self._timestamp >= self._maxage:
                price		= float( self._fetch() )
                self._price	= price
                self._timestamp	= self._clock()
                log.info( f"Refreshed recommended gas price: {price:,.2f} Gwei" )
            return self._price


def gasstation_fast_gwei():
    """The gas station's "fast" price; it quotes in Gwei x 10."""
    return float( explorer.gasstation()['fast'] ) / 10


class EthReader:
    """Reads from an Ethereum(-compatible) chain via several redundant nodes.

    Every query is issued to all the nodes concurrently, and the first successful answer (in order
    of arrival) is returned.  Results are never combined across nodes.  Only if every node fails is
    an AllNodesFailed raised, describing each node's failure.

    By default (wait_all=True), all nodes are awaited before returning, even once a successful
    answer has arrived, so no query outlives the call; the slowest node bounds the latency.  With
    wait_all=False, the first success is returned immediately, and the remaining queries are left
    to finish (or time out, in their Web3 providers) in the background.

    The nodes may be supplied as { name: url }, or as { name: EthereumNode }.
    """
    def __init__(
        self,
        nodes: Mapping[str,Union[str,EthereumNode]],
        chain: Union[Chain,str,None]	= None,
        wait_all: bool			= True,
        gas_oracle: Optional[Callable[[],float]] = None,	# Returns recommended Ethereum Gwei/Gas
    ):
        self._chain		= chain_of( chain )
        self._nodes: Dict[str,EthereumNode] = {}
        for name,node in dict( nodes ).items():
            if not isinstance( node, EthereumNode ):
                node		= Web3Node( name, node )
            self._nodes[name]	= node
        assert self._nodes, \
            f"At least one node is required to read from {chain_name( self._chain )}"
        self._wait_all		= wait_all
        self._gas_price		= GasPriceCache( gas_oracle or gasstation_fast_gwei )
        log.info( f"{chain_name( self._chain )} reader w/ {len( self._nodes )} nodes: {', '.join( self._nodes )}" )

    @property
    def chain( self ):
        return self._chain

    @property
    def nodes( self ) -> Dict[str,EthereumNode]:
        return dict( self._nodes )

    def _race( self, what: str, *args ) -> Any:
        """Call the EthereumNode method 'what' w/ args on every node, and return the first success."""
        errors: List[Tuple[str,Exception]] = []
        found,winner		= False,None
        executor		= ThreadPoolExecutor(
            max_workers		= len( self._nodes ),
            thread_name_prefix	= what,
        )
        try:
            futures		= {
                executor.submit( getattr( node, what ), *args ): name
                for name,node in self._nodes.items()
            }
            for future in as_completed( futures ):
                name		= futures[future]
                try:
                    result	= future.result()
                except Exception as exc:
                    log.info( f"{what} failed on {name}: {exc}" )
                    errors.append( (name, exc) )
                    continue
                if not found:
                    found,winner = True,result
                    log.debug( f"{what} answered by {name}" )
                    if not self._wait_all:
                        break
        finally:
            executor.shutdown( wait=self._wait_all )
        if found:
            return winner
        failure			= AllNodesFailed( errors )
        log.warning( f"{what}: {failure}" )
        raise failure

    #
    # Redundant queries
    #
    def estimate_gas( self, from_, to, price_gwei, value, data ) -> int:
        return self._race( 'estimate_gas', from_, to, price_gwei, value, data )

    def get_code( self, address ) -> bytes:
        return self._race( 'get_code', address )

    def get_balance( self, address ) -> int:
        return self._race( 'get_balance', address )

    def get_mined_nonce( self, address ) -> int:
        return self._race( 'get_mined_nonce', address )

    def get_pending_nonce( self, address ) -> int:
        return self._race( 'get_pending_nonce', address )

    def _race_found( self, what, missing, *args ):
        """As _race, but if every node reports the transaction as not found, returns missing.  A node
        that has the transaction always wins over any that haven't seen it (yet)."""
        try:
            return self._race( what, *args )
        except AllNodesFailed as exc:
            if all( isinstance( err, TransactionNotFound ) for _,err in exc.errors ):
                return missing
            raise

    def transaction_receipt( self, tx_hash ):
        """The receipt, or None if no node has one."""
        return self._race_found( 'transaction_receipt', None, tx_hash )

    def transaction_by_hash( self, tx_hash ):
        """Returns (tx, is_pending); tx is None if no node knows of it."""
        return self._race_found( 'transaction_by_hash', (None, False), tx_hash )

    def read_contract_to_bytes( self, at_block, from_, contract, abi, method, *args ) -> bytes:
        return self._race( 'read_contract_to_bytes', at_block, from_, contract, abi, method, *args )

    def header_by_number( self, number ):
        return self._race( 'header_by_number', number )

    def get_logs( self, from_block, to_block, addresses, topic=None ) -> List:
        """Logs from from_block to to_block (or the latest block, if < 0)"""
        return self._race( 'get_logs', from_block, to_block, list( addresses ), topic )

    def current_block( self ) -> int:
        return self._race( 'current_block' )

    #
    # Transaction status
    #
    def tx_info_from_hash( self, tx_hash ) -> TxInfo:
        """Find a transaction and classify its mining status.  Raises AllNodesFailed if the
        transaction couldn't be read; failing to get a receipt is taken to mean it's still pending.

        """
        tx,is_pending		= self.transaction_by_hash( tx_hash )
        if tx is None:
            return TxInfo( TxStatus.NotFound )
        if is_pending:
            return TxInfo( TxStatus.Pending, tx )
        try:
            receipt		= self.transaction_receipt( tx_hash )
        except AllNodesFailed as exc:
            log.info( f"No receipt for mined transaction {tx_hash}: {exc}" )
            receipt		= None
        if receipt is None:
            return TxInfo( TxStatus.Pending, tx )
        return TxInfo( receipt_status( receipt ), tx, receipt )

    #
    # Gas pricing, in Gwei
    #
    def recommended_gas_price( self ) -> float:
        if self._chain is Chain.Ethereum:
            return self._gas_price.get()
        if isinstance( self._chain, Chain ) and self._chain.name in FIXED_GAS_PRICE_GWEI:
            return FIXED_GAS_PRICE_GWEI[self._chain.name]
        raise UnsupportedChain( f"'{chain_name( self._chain )}' chain is not supported" )

    #
    # Contract ABIs, from the chain's block explorer
    #
    def get_abi_string( self, address ) -> str:
        return explorer.abi_string( self._chain, address )

    def get_abi( self, address ) -> Abi:
        return Abi.from_json( self.get_abi_string( address ))

    #
    # Contract view methods, decoded w/ the contract's ABI
    #
    def read_history_contract_with_abi( self, at_block, contract, abi, method, *args ):
        data			= self.read_contract_to_bytes( at_block, DEFAULT_ADDRESS, contract, abi, method, *args )
        return abi.unpack( method, data )

    def read_contract_with_abi_and_from( self, from_, contract, abi, method, *args ):
        data			= self.read_contract_to_bytes( LATEST, from_, contract, abi, method, *args )
        return abi.unpack( method, data )

    def read_contract_with_abi( self, contract, abi, method, *args ):
        return self.read_contract_with_abi_and_from( DEFAULT_ADDRESS, contract, abi, method, *args )

    def read_history_contract( self, at_block, contract, method, *args ):
        return self.read_history_contract_with_abi( at_block, contract, self.get_abi( contract ), method, *args )

    def read_contract( self, contract, method, *args ):
        return self.read_contract_with_abi( contract, self.get_abi( contract ), method, *args )

    def history_erc20_balance( self, at_block, token, user ) -> int:
        return self.read_history_contract_with_abi(
            at_block, token, erc20_abi(), 'balanceOf', Web3.to_checksum_address( user ))

    def erc20_balance( self, token, user ) -> int:
        return self.history_erc20_balance( LATEST, token, user )

    def history_erc20_decimal( self, at_block, token ) -> int:
        return int( self.read_history_contract_with_abi( at_block, token, erc20_abi(), 'decimals' ))

    def erc20_decimal( self, token ) -> int:
        return self.history_erc20_decimal( LATEST, token )

    def history_erc20_allowance( self, at_block, token, owner, spender ) -> int:
        return self.read_history_contract_with_abi(
            at_block, token, erc20_abi(), 'allowance',
            Web3.to_checksum_address( owner ),
            Web3.to_checksum_address( spender ),
        )

    def erc20_allowance( self, token, owner, spender ) -> int:
        return self.history_erc20_allowance( LATEST, token, owner, spender )

    def address_from_contract( self, contract, method ) -> str:
        """Read an address-valued view method (eg. owner) w/ no arguments."""
        return Web3.to_checksum_address( self.read_contract( contract, method ))


def default_nodes( chain=None ) -> Dict[str,str]:
    """The built-in { name: url } nodes for a chain.  Uses the INFURA_API_TOKEN environment
    variable, or the shared "testing" token, which is severely rate limited.

    """
    chain			= chain_of( chain )
    try:
        urls			= NODE_URLS[chain_name( chain )]
    except KeyError as exc:
        raise UnsupportedChain( f"'{chain_name( chain )}' chain is not supported" ) from exc
    token			= os.getenv( 'INFURA_API_TOKEN' )
    if not token:
        token			= INFURA_API_TESTING
        log.info( f"Using \"Testing\" Infura {chain_name( chain )} API token; supply your own via INFURA_API_TOKEN" )
    return {
        name: url.format( token=token )
        for name,url in urls.items()
    }


def eth_reader( chain=None, nodes=None, **kwds ) -> EthReader:
    """An EthReader for the chain (default: Ethereum), using its default nodes unless supplied."""
    return EthReader( default_nodes( chain ) if nodes is None else nodes, chain=chain, **kwds )
