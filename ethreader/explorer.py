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
import os

from enum		import Enum
from typing		import Union

import requests

from .abi		import Abi
from .util		import memoize
from .defaults		import (
    ETHERSCAN_URLS, TOMOSCAN_URL, EXPLORER_TIMEOUT,
    ETHERSCAN_MEMO_MAXAGE, ETHERSCAN_MEMO_MAXSIZE,
    GASSTATION_URL,
)

__author__                      = "Perry Kundert"
__email__                       = "perry@dominionrnd.com"
__copyright__                   = "Copyright (c) 2022 Dominion Research & Development Corp."
__license__                     = "Dual License: GPLv3 (or later) and Commercial (see LICENSE)"

log				= logging.getLogger( 'explorer' )


class UnsupportedChain( ValueError ):
    """No block explorer (or gas pricing policy) is known for the chain."""


class Chain( Enum ):
    Ethereum		= 1
    Ropsten		= 3
    Rinkeby		= 4
    Goerli		= 5
    Kovan		= 42
    Tomo		= 88
    Sepolia		= 11155111


def chain_of( chain: Union[Chain,str,None] ) -> Union[Chain,str]:
    """Find the Chain named (case-insensitively) by a str tag, defaulting to Ethereum.  An
    unrecognized tag is returned unchanged; whatever later needs a chain-specific service will
    reject it (see UnsupportedChain).

    """
    if chain is None:
        return Chain.Ethereum
    if isinstance( chain, Chain ):
        return chain
    for c in Chain:
        if c.name.lower() == chain.strip().lower():
            return c
    return chain


def chain_name( chain ) -> str:
    return chain.name if isinstance( chain, Chain ) else str( chain )


@memoize( maxage=ETHERSCAN_MEMO_MAXAGE, maxsize=ETHERSCAN_MEMO_MAXSIZE, log_at=logging.INFO )
def etherscan( chain, params, headers=None, apikey=None, timeout=None, verify=True ):
    """Queries an etherscan.io-family API, optionally w/ your apikey.  The params must be a hashable
    sequence (tuple of tuples) usable to construct a dict, since memoize only caches based on args,
    and all args must be hashable.

    Raises exception on timeout, absence of successful response, absence of 'result' in response.
    Does no other checking on the content of the response' 'result'.  For example, asking for the
    ABI of an unverified contract yields:

        {
            "status": "0",
            "message": "NOTOK",
            "result": "Contract source code not verified"
        }

    """
    assert isinstance( chain, Chain ) and chain.name in ETHERSCAN_URLS, \
        f"No Etherscan API service URL specified for {chain_name( chain )}"
    url				= ETHERSCAN_URLS[chain.name]
    timeout			= timeout or EXPLORER_TIMEOUT
    params			= dict( params )
    if apikey is None:
        apikey			= os.getenv( 'ETHERSCAN_API_TOKEN' )
    if apikey and apikey.strip():  # May remain None, or be empty
        params.setdefault( 'apikey', apikey.strip() )

    # A successful request is a 200 OK, with a JSON-encoded result dict/ w a status: "1".  We do not
    # want to return any non-Exception response excepts successes, because these are Memoized.
    log.debug( "Querying {} w/ {}".format( url, params ))
    try:
        response		= requests.get(
            url,
            params	= params,
            headers	= headers,
            timeout	= timeout,
            verify	= verify,
        )
        assert response.status_code == 200, \
            "Failed to query {} for {}: {}".format( chain_name( chain ), params, response.text )
        response_json	= response.json()
        assert hasattr( response_json, 'keys' ) and {'status', 'result'} <= set( response_json.keys() ) and int( response_json['status'] ), \
            "Query {} for {} yielded invalid response: {}".format( chain_name( chain ), params, response.text )
    except Exception as exc:
        log.info( f"Query failed w/ Exception: {exc}" )
        raise

    log.info( "Querying {} w/ {}: {}".format(
        url, params,
        json.dumps( response_json, indent=4 ) if log.isEnabledFor( logging.DEBUG ) else response.text[:80]
    ))
    return response_json['result']


def etherscan_abi( chain, address, **kwds ) -> str:
    """Return the ABI JSON text of a verified contract from the chain's Etherscan explorer."""
    return etherscan(
        chain,
        (
            ('module', 'contract'),
            ('action', 'getabi'),
            ('address', address),
        ),
        **kwds,
    )


def tomoscan_abi( chain, address, timeout=None, **kwds ) -> str:
    """Return the ABI JSON text of a contract from tomoscan, which returns the account's details:

        {
            "contract": {
                "abiCode": "[{\"constant\":true,...}]",
                ...
            },
            ...
        }

    """
    url				= TOMOSCAN_URL.format( address=address )
    log.debug( f"Querying {url}" )
    response			= requests.get( url, timeout=timeout or EXPLORER_TIMEOUT )
    assert response.status_code == 200, \
        f"Failed to query {chain_name( chain )} for {address}: {response.text}"
    abi_code			= ( response.json().get( 'contract' ) or {} ).get( 'abiCode' )
    assert abi_code, \
        f"Query {chain_name( chain )} for {address} yielded no contract ABI: {response.text}"
    return abi_code


abi_fetchers			= dict(
    Ethereum	= etherscan_abi,
    Ropsten	= etherscan_abi,
    Kovan	= etherscan_abi,
    Rinkeby	= etherscan_abi,
    Goerli	= etherscan_abi,
    Sepolia	= etherscan_abi,
    Tomo	= tomoscan_abi,
)


def abi_string( chain, address, **kwds ) -> str:
    """Fetch a contract's ABI JSON text from the chain's block explorer.  An unsupported chain is
    rejected before any query is made.

    """
    chain			= chain_of( chain )
    fetcher			= abi_fetchers.get( chain_name( chain )) if isinstance( chain, Chain ) else None
    if fetcher is None:
        raise UnsupportedChain( f"'{chain_name( chain )}' chain is not supported" )
    return fetcher( chain, address, **kwds )


def contract_abi( chain, address, **kwds ) -> Abi:
    return Abi.from_json( abi_string( chain, address, **kwds ))


def gasstation( url=None, timeout=None ):
    """Query the gas station oracle; returns its prices in Gwei x 10, eg.:

        {
            "average": 210.0,
            "fast": 260.0,
            "fastest": 300.0,
            "safeLow": 180.0,
            ...
        }

    """
    url				= url or os.getenv( 'ETHREADER_GASSTATION_URL' ) or GASSTATION_URL
    log.debug( f"Querying {url}" )
    response			= requests.get( url, timeout=timeout or EXPLORER_TIMEOUT )
    assert response.status_code == 200, \
        f"Failed to query gas station {url}: {response.text}"
    prices			= response.json()
    assert hasattr( prices, 'keys' ) and 'fast' in prices, \
        f"Gas station {url} yielded invalid response: {response.text}"
    log.info( f"Gas station prices (Gwei x 10): {prices!r}" )
    return prices
