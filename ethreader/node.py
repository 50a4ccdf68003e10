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

import abc
import logging

from typing		import List, Optional, Sequence, Tuple

from web3		import Web3, HTTPProvider, LegacyWebSocketProvider
from web3.exceptions	import TransactionNotFound		# noqa F401; raised by EthereumNode for unknown transactions

from .abi		import Abi
from .util		import memoize, commas

__author__                      = "Perry Kundert"
__email__                       = "perry@dominionrnd.com"
__copyright__                   = "Copyright (c) 2022 Dominion Research & Development Corp."
__license__                     = "Dual License: GPLv3 (or later) and Commercial (see LICENSE)"

log				= logging.getLogger( 'node' )


def block_identifier( number ):
    """Negative block numbers (eg. defaults.LATEST) denote the latest block."""
    return 'latest' if number is None or number < 0 else number


class EthereumNode( abc.ABC ):
    """One backend node of some Ethereum(-compatible) chain, able to answer read-only queries.  Each
    call is independent; any failure is raised as an Exception, to be attributed to this node by
    whatever is reading from it (see reader.EthReader).

    Addresses are hex strings; hashes are hex strings or bytes.  Block numbers < 0 mean "latest".
    """
    def __init__( self, name: str, url: str ):
        self._name		= name
        self._url		= url

    @property
    def name( self ) -> str:
        return self._name

    @property
    def url( self ) -> str:
        return self._url

    def __str__( self ):
        return f"{self.__class__.__name__}( {self.name}: {self.url} )"

    @abc.abstractmethod
    def estimate_gas( self, from_: str, to: str, price_gwei: float, value: float, data: bytes ) -> int:
        """Gas required by a transaction of 'value' ETH w/ 'data', at 'price_gwei' Gwei/Gas"""

    @abc.abstractmethod
    def get_code( self, address: str ) -> bytes:
        pass

    @abc.abstractmethod
    def get_balance( self, address: str ) -> int:
        """Balance, in Wei"""

    @abc.abstractmethod
    def get_mined_nonce( self, address: str ) -> int:
        pass

    @abc.abstractmethod
    def get_pending_nonce( self, address: str ) -> int:
        pass

    @abc.abstractmethod
    def transaction_receipt( self, tx_hash ):
        """The transaction's receipt.  Raises TransactionNotFound if this node has no receipt (yet)."""

    @abc.abstractmethod
    def transaction_by_hash( self, tx_hash ) -> Tuple[dict,bool]:
        """The transaction, and whether it is still pending.  Raises TransactionNotFound if this node
        doesn't know of it."""

    @abc.abstractmethod
    def read_contract_to_bytes( self, at_block: int, from_: str, contract: str, abi: Abi, method: str, *args ) -> bytes:
        """Call the contract's view 'method' at the given block, returning the raw result data."""

    @abc.abstractmethod
    def header_by_number( self, number: int ):
        pass

    @abc.abstractmethod
    def get_logs( self, from_block: int, to_block: int, addresses: Sequence[str], topic: Optional[str] ) -> List:
        pass

    @abc.abstractmethod
    def current_block( self ) -> int:
        pass


#
# One way to cache Web3 providers; a URL is always served by the same provider.
#
# WARNING:
# - Caches results w/ differing use_provider=, for the same w3_url
#
@memoize( maxage=None, maxsize=None, log_at=logging.INFO )
def w3_provider( w3_url, use_provider=None ):
    """Return a Web3.*Provider associated with the specified URL, optionally using the specified
    provider."""
    if use_provider is None:
        use_provider		= dict(
            wss		= LegacyWebSocketProvider,
            ws		= LegacyWebSocketProvider,
            http	= HTTPProvider,
            https	= HTTPProvider,
        )[w3_url.split( ':', 1 )[0].lower()]
    return use_provider( w3_url )


class Web3Node( EthereumNode ):
    """An EthereumNode served by web3.py, over HTTP(S) or WebSocket depending on the URL.  Any
    timeouts are those of the underlying Web3 provider.

    """
    def __init__( self, name, url, use_provider=None ):
        super().__init__( name, url )
        self._w3		= Web3( w3_provider( url, use_provider ))

    @staticmethod
    def _address( address ):
        return Web3.to_checksum_address( address )

    def estimate_gas( self, from_, to, price_gwei, value, data ):
        return self._w3.eth.estimate_gas( {
            'from':	self._address( from_ ),
            'to':	self._address( to ),
            'gasPrice':	Web3.to_wei( price_gwei, 'gwei' ),
            'value':	Web3.to_wei( value, 'ether' ),
            'data':	data,
        } )

    def get_code( self, address ):
        return bytes( self._w3.eth.get_code( self._address( address )))

    def get_balance( self, address ):
        return self._w3.eth.get_balance( self._address( address ))

    def get_mined_nonce( self, address ):
        return self._w3.eth.get_transaction_count( self._address( address ), 'latest' )

    def get_pending_nonce( self, address ):
        return self._w3.eth.get_transaction_count( self._address( address ), 'pending' )

    def transaction_receipt( self, tx_hash ):
        return self._w3.eth.get_transaction_receipt( tx_hash )

    def transaction_by_hash( self, tx_hash ):
        tx			= self._w3.eth.get_transaction( tx_hash )
        return tx, tx.get( 'blockNumber' ) is None

    def read_contract_to_bytes( self, at_block, from_, contract, abi, method, *args ):
        data			= abi.encode_call( method, *args )
        log.debug( f"{self.name}: Calling {contract}.{method}( {commas( args )} ) at block {block_identifier( at_block )}" )
        return bytes( self._w3.eth.call(
            {
                'from':	self._address( from_ ),
                'to':	self._address( contract ),
                'data':	data,
            },
            block_identifier( at_block ),
        ))

    def header_by_number( self, number ):
        return self._w3.eth.get_block( block_identifier( number ))

    def get_logs( self, from_block, to_block, addresses, topic ):
        flt			= {
            'fromBlock':	block_identifier( from_block ),
            'toBlock':		block_identifier( to_block ),
            'address':		[ self._address( a ) for a in addresses ],
        }
        if topic:
            flt['topics']	= [ topic ]
        return self._w3.eth.get_logs( flt )

    def current_block( self ):
        return self._w3.eth.block_number
