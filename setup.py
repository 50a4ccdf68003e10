import os

from setuptools import setup

# 
# All platforms
# 
HERE				= os.path.dirname( os.path.abspath( __file__ ))

install_requires		= open( os.path.join( HERE, "requirements.txt" )).readlines()
tests_require			= open( os.path.join( HERE, "requirements-tests.txt" )).readlines()

# Since setuptools is retiring tests_require, add it as an option
extras_require			= {
    'tests':			tests_require,
}

# Must work if setup.py is run in the source distribution context, or from
# within the packaged distribution directory.
__version__			= None
try:
    exec( open( 'ethreader/version.py', 'r' ).read() )
except FileNotFoundError:
    exec( open( 'version.py', 'r' ).read() )

console_scripts			= [
    'ethreader-cli	= ethreader.cli:cli',
]

entry_points			= {
    'console_scripts': 		console_scripts,
}

package_dir			= {
    "ethreader":		"./ethreader",
    "ethreader.cli":		"./ethreader/cli",
}

long_description_content_type	= 'text/markdown'
long_description		= """\
Reading an Ethereum blockchain through any single node (or API
provider) is fragile: nodes fall behind, get rate-limited, or go away.

The ethreader library asks several redundant nodes the same question
concurrently, and uses the first successful answer.  Only if every node
fails is the query considered to have failed, with each node's error
reported.

On top of this redundant reader, it supplies:

- Contract view method reads, decoded via the contract's ABI (fetched
  from the chain's block explorer), including ERC-20 balance, decimals
  and allowance, at the latest or any historical block.
- Transaction status (not found, pending, done or reverted), including
  pre-Byzantium receipts.
- A recommended gas price, cached from a gas station oracle on Ethereum,
  or fixed on other supported chains.
- A transaction analyzer, explaining a transaction's value, method call
  parameters, event logs, and any call proposed through a Gnosis-style
  multisig wallet, in human-readable terms.

## Analyzing a Transaction on the Command Line

    $ ethreader-cli --no-json tx 0x...
    $ ethreader-cli --chain Goerli --node mine=http://localhost:8545 balance 0x...
"""

classifiers			= [
    "License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)",
    "License :: Other/Proprietary License",
    "Programming Language :: Python :: 3",
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Environment :: Console",
    "Topic :: Office/Business :: Financial",
]

setup(
    name			= "ethreader",
    version			= __version__,
    install_requires		= install_requires,
    tests_require		= tests_require,
    extras_require		= extras_require,
    packages			= package_dir.keys(),
    package_dir			= package_dir,
    include_package_data	= True,
    zip_safe			= True,
    entry_points		= entry_points,
    author			= "Perry Kundert",
    author_email		= "perry@dominionrnd.com",
    description			= "Redundant Ethereum node reader, and human-readable transaction analyzer",
    long_description		= long_description,
    long_description_content_type = long_description_content_type,
    license			= "Dual License; GPLv3 and Proprietary",
    keywords			= "Ethereum web3 JSON-RPC ABI ERC-20 transaction analyzer multisig",
    classifiers			= classifiers,
    python_requires		= ">=3.9",
)
