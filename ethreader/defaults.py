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

__author__                      = "Perry Kundert"
__email__                       = "perry@dominionrnd.com"
__copyright__                   = "Copyright (c) 2022 Dominion Research & Development Corp."
__license__                     = "Dual License: GPLv3 (or later) and Commercial (see LICENSE)"

#
# Reading Ethereum(-compatible) chains
#
# Read-only queries are issued to every configured node for a chain; whichever node answers
# successfully first wins.  Contract ABIs come from each chain's block explorer.
#
DEFAULT_ADDRESS			= "0x0000000000000000000000000000000000000000"
LATEST				= -1		# Block number sentinel; query the latest block

# Default nodes for each chain.  Any {token} is replaced w/ the INFURA_API_TOKEN environment
# variable (or the shared testing token, if none supplied).
INFURA_API_TESTING		= "247128ae36b6444d944d4c3793c8e3f5"
NODE_URLS			= dict(
    Ethereum	= {
        "mainnet-infura":	"https://mainnet.infura.io/v3/{token}",
        "mainnet-cloudflare":	"https://cloudflare-eth.com",
    },
    Ropsten	= {
        "ropsten-infura":	"https://ropsten.infura.io/v3/{token}",
    },
    Kovan	= {
        "kovan-infura":		"https://kovan.infura.io/v3/{token}",
    },
    Rinkeby	= {
        "rinkeby-infura":	"https://rinkeby.infura.io/v3/{token}",
    },
    Goerli	= {
        "goerli-infura":	"https://goerli.infura.io/v3/{token}",
    },
    Sepolia	= {
        "sepolia-infura":	"https://sepolia.infura.io/v3/{token}",
    },
    Tomo	= {
        "mainnet-tomo":		"https://rpc.tomochain.com",
    },
)

#
# Block explorers, for contract ABIs.  The Etherscan family returns {"status": "1", "result":
# "<abi json>"}; Tomoscan returns {"contract": {"abiCode": "<abi json>"}}.
#
ETHERSCAN_URLS			= dict(
    Ethereum	= 'https://api.etherscan.io/api',
    Ropsten	= 'https://api-ropsten.etherscan.io/api',
    Kovan	= 'https://api-kovan.etherscan.io/api',
    Rinkeby	= 'https://api-rinkeby.etherscan.io/api',
    Goerli	= 'https://api-goerli.etherscan.io/api',
    Sepolia	= 'https://api-sepolia.etherscan.io/api',
)
TOMOSCAN_URL			= 'https://scan.tomochain.com/api/accounts/{address}'
EXPLORER_TIMEOUT		= 5.0

# We'll default to 30-second intervals for repeating identical Etherscan queries
ETHERSCAN_MEMO_MAXAGE		= 30
ETHERSCAN_MEMO_MAXSIZE		= None

#
# Gas pricing, in Gwei.  Test networks and low-fee chains use a fixed price; Ethereum consults
# the gas station oracle, whose values are in Gwei x 10, at most once per GAS_PRICE_MAXAGE.
#
GASSTATION_URL			= 'https://ethgasstation.info/json/ethgasAPI.json'
GAS_PRICE_MAXAGE		= 30
FIXED_GAS_PRICE_GWEI		= dict(
    Ropsten	= 50.0,
    Kovan	= 50.0,
    Rinkeby	= 50.0,
    Goerli	= 50.0,
    Sepolia	= 50.0,
    Tomo	= 1.0,
)

# Transaction display
ETH_DECIMALS			= 18
GWEI_DECIMALS			= 9
