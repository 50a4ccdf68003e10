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

from .version	import __version__			# noqa F401
from .abi	import (				# noqa F401
    AbiError, Kind, AbiType, Argument, Method, Event, Abi,
    unpack_values, split_event_arguments, erc20_abi,
)
from .node	import (				# noqa F401
    EthereumNode, Web3Node,
)
from .explorer	import (				# noqa F401
    UnsupportedChain, Chain, chain_of, chain_name,
    etherscan, abi_string, contract_abi, gasstation,
)
from .reader	import (				# noqa F401
    AllNodesFailed, TxStatus, TxInfo, receipt_status,
    GasPriceCache, EthReader, default_nodes, eth_reader,
)
from .addresses	import (				# noqa F401
    AddressDatabase,
)
from .results	import (				# noqa F401
    AddressResult, ParamResult, TopicResult, LogResult, GnosisResult, TxResult,
)
from .analyzer	import (				# noqa F401
    TxAnalyzer,
)

__author__                      = "Perry Kundert"
__email__                       = "perry@dominionrnd.com"
__copyright__                   = "Copyright (c) 2022 Dominion Research & Development Corp."
__license__                     = "Dual License: GPLv3 (or later) and Commercial (see LICENSE)"
