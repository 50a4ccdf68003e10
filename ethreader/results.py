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

from dataclasses	import dataclass, field, asdict
from typing		import List, Optional

__author__                      = "Perry Kundert"
__email__                       = "perry@dominionrnd.com"
__copyright__                   = "Copyright (c) 2022 Dominion Research & Development Corp."
__license__                     = "Dual License: GPLv3 (or later) and Commercial (see LICENSE)"

"""
The presentation records produced by transaction analysis.  All values are already rendered to
text, so they may be printed or serialized (eg. via TxResult.as_dict) directly.
"""


@dataclass
class AddressResult:
    address: str
    name: str			= ''


@dataclass
class ParamResult:
    name: str
    type: str
    value: str


@dataclass
class TopicResult:
    name: str
    value: str


@dataclass
class LogResult:
    name: str
    topics: List[TopicResult]	= field( default_factory=list )
    data: List[ParamResult]	= field( default_factory=list )


@dataclass
class GnosisResult:
    """The call embedded in a multisig wallet's submitTransaction."""
    contract: AddressResult
    method: str			= ''
    params: List[ParamResult]	= field( default_factory=list )


@dataclass
class TxResult:
    hash: str
    status: str			= ''
    from_: Optional[AddressResult] = None
    to: Optional[AddressResult]	= None
    value: str			= ''		# Ether
    nonce: str			= ''
    gas_price: str		= ''		# Gwei
    gas_limit: str		= ''
    tx_type: str		= ''		# 'normal' or 'contract call'
    contract: Optional[AddressResult] = None
    method: str			= ''
    params: List[ParamResult]	= field( default_factory=list )
    logs: List[LogResult]	= field( default_factory=list )
    gnosis_init: Optional[GnosisResult] = None
    error: str			= ''

    def add_error( self, message ):
        """Analysis errors accumulate, one per line."""
        self.error		= f"{self.error}\n{message}" if self.error else message

    def as_dict( self ):
        result			= asdict( self )
        result['from']		= result.pop( 'from_' )
        return result
