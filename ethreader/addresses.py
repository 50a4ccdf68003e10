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

from typing		import Dict, Mapping, Optional

__author__                      = "Perry Kundert"
__email__                       = "perry@dominionrnd.com"
__copyright__                   = "Copyright (c) 2022 Dominion Research & Development Corp."
__license__                     = "Dual License: GPLv3 (or later) and Commercial (see LICENSE)"

log				= logging.getLogger( 'addresses' )


def address_key( address: str ) -> str:
    """Addresses are matched regardless of checksum case, and w/ or w/o the 0x prefix."""
    address			= address.strip().lower()
    if address.startswith( '0x' ):
        address			= address[2:]
    return address


class AddressDatabase:
    """Human-readable names for known addresses, eg. exchanges, tokens, multisig wallets."""
    def __init__( self, names: Optional[Mapping[str,str]] = None ):
        self._names: Dict[str,str] = {}
        for address,name in ( names or {} ).items():
            self.register( address, name )

    def register( self, address: str, name: str ):
        key			= address_key( address )
        assert len( key ) == 40, \
            f"Invalid Ethereum address {address!r}"
        self._names[key]	= name

    def get_name( self, address: str ) -> str:
        return self._names.get( address_key( address ), '' )

    def __len__( self ):
        return len( self._names )
