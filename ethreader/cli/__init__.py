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

from __future__          import annotations

import click
import json
import logging

from tabulate		import tabulate

from ..reader		import eth_reader
from ..addresses	import AddressDatabase
from ..analyzer		import TxAnalyzer, scaled
from ..defaults		import ETH_DECIMALS
from ..explorer		import chain_name
from ..util		import commas, log_cfg, log_level

__author__                      = "Perry Kundert"
__email__                       = "perry@dominionrnd.com"
__copyright__                   = "Copyright (c) 2022 Dominion Research & Development Corp."
__license__                     = "Dual License: GPLv3 (or later) and Commercial (see LICENSE)"

"""
Provide basic CLI access to the ethreader API.

Output generally defaults to JSON.  Use -v for more details, and --no-json to emit standard text output instead.
"""

log				= logging.getLogger( __package__ )


def pairs( values, what ):
    """Parse a sequence of NAME=VALUE into a dict."""
    result			= {}
    for nv in values:
        name,eq,value		= nv.partition( '=' )
        if not eq or not name or not value:
            raise click.BadParameter( f"Expected {what} NAME=VALUE, not {nv!r}" )
        result[name.strip()]	= value.strip()
    return result


@click.group()
@click.option('-v', '--verbose', count=True)
@click.option('-q', '--quiet', count=True)
@click.option( '--json/--no-json', default=True, help="Output JSON (the default)")
@click.option( '--chain', help="The Ethereum chain to read from (default: Ethereum)" )
@click.option( '--node', multiple=True, help="A NAME=URL node to read from (default: the chain's built-in nodes)" )
@click.option( '--name', multiple=True, help="An ADDRESS=NAME to display for a known address" )
def cli( verbose, quiet, json, chain, node, name ):
    cli.verbosity		= verbose - quiet
    log_cfg['level']		= log_level( cli.verbosity )
    logging.basicConfig( **log_cfg )
    if verbose or quiet:
        logging.getLogger().setLevel( log_cfg['level'] )
    cli.json			= json
    cli.chain			= chain
    cli.nodes			= pairs( node, 'node' ) or None
    cli.names			= pairs( name, 'name' )
cli.verbosity			= 0  # noqa: E305
cli.json			= False
cli.chain			= None
cli.nodes			= None
cli.names			= {}


def cli_reader():
    eth				= eth_reader( cli.chain, nodes=cli.nodes )
    log.info( f"Reading {chain_name( eth.chain )} via {commas( eth.nodes, final='and' )}" )
    return eth


def tx_rows( result ):
    """The rows of a TxResult's text table; empty fields are omitted."""
    def addr( ar ):
        return f"{ar.address} ({ar.name})" if ar and ar.name else ar.address if ar else ''

    rows			= [
        ( "Hash", result.hash ),
        ( "Status", result.status ),
        ( "From", addr( result.from_ )),
        ( "To", addr( result.to )),
        ( "Value (ETH)", result.value ),
        ( "Nonce", result.nonce ),
        ( "Gas Price (Gwei)", result.gas_price ),
        ( "Gas Limit", result.gas_limit ),
        ( "Type", result.tx_type ),
        ( "Contract", addr( result.contract )),
        ( "Method", result.method ),
    ]
    rows.extend(
        ( f"  {p.name} ({p.type})", p.value )
        for p in result.params
    )
    for i,lr in enumerate( result.logs ):
        rows.append( ( f"Log {i}", lr.name ))
        rows.extend( ( f"  {t.name}", t.value ) for t in lr.topics )
        rows.extend( ( f"  {p.name} ({p.type})", p.value ) for p in lr.data )
    if result.gnosis_init:
        rows.append( ( "Multisig Call", addr( result.gnosis_init.contract )))
        rows.append( ( "  Method", result.gnosis_init.method ))
        rows.extend(
            ( f"    {p.name} ({p.type})", p.value )
            for p in result.gnosis_init.params
        )
    rows.append( ( "Error", result.error ))
    return [ (k,v) for k,v in rows if v ]


@click.command()
@click.argument( "tx_hash" )
def tx( tx_hash ):
    """Analyze a transaction"""
    result			= TxAnalyzer( cli_reader(), AddressDatabase( cli.names )).analyze( tx_hash )
    if cli.json:
        click.echo( json.dumps( result.as_dict(), indent=4 ))
    else:
        click.echo( tabulate( tx_rows( result ), tablefmt="plain" ))


@click.command()
def gasprice():
    """The recommended gas price, in Gwei"""
    price			= cli_reader().recommended_gas_price()
    if cli.json:
        click.echo( json.dumps( price ))
    else:
        click.echo( f"{price:,.2f} Gwei" )


@click.command()
@click.option( "--token", help="An ERC-20 token contract address (default: ETH)" )
@click.argument( "address" )
def balance( token, address ):
    """The ETH (or an ERC-20 token) balance of an address"""
    eth				= cli_reader()
    if token:
        raw			= eth.erc20_balance( token, address )
        decimals		= eth.erc20_decimal( token )
    else:
        raw			= eth.get_balance( address )
        decimals		= ETH_DECIMALS
    amount			= scaled( raw, decimals )
    if cli.json:
        click.echo( json.dumps( dict( address=address, token=token, balance=str( raw ), amount=amount ), indent=4 ))
    elif cli.verbosity > 0:
        click.echo( tabulate(
            [ ( address, token or "ETH", raw, amount ) ],
            headers	= ( "Address", "Token", "Units", "Amount" ),
            tablefmt	= "orgtbl",
        ))
    else:
        click.echo( amount )


@click.command()
@click.argument( "address" )
def abi( address ):
    """The contract ABI of an address, from the chain's block explorer"""
    eth				= cli_reader()
    if cli.json:
        click.echo( json.dumps( json.loads( eth.get_abi_string( address )), indent=4 ))
        return
    contract			= eth.get_abi( address )
    click.echo( tabulate(
        [ ( "method", m.name, m.signature, '0x' + m.selector.hex() ) for m in contract.methods.values() ]
        + [ ( "event", e.name, e.signature, '0x' + e.id.hex() ) for e in contract.events.values() ],
        headers		= ( "Kind", "Name", "Signature", "Id" ),
        tablefmt	= "orgtbl",
    ))


cli.add_command( tx )
cli.add_command( gasprice )
cli.add_command( balance )
cli.add_command( abi )
