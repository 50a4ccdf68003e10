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

from typing		import Union
from functools		import wraps
from time		import time	as timer


__author__                      = "Perry Kundert"
__email__                       = "perry@dominionrnd.com"
__copyright__                   = "Copyright (c) 2022 Dominion Research & Development Corp."
__license__                     = "Dual License: GPLv3 (or later) and Commercial (see LICENSE)"

log				= logging.getLogger( "util" )


log_cfg				= {
    "level":	logging.WARNING,
    "datefmt":	'%Y-%m-%d %H:%M:%S',
    #"format":	'%(asctime)s.%(msecs).03d %(threadName)10.10s %(name)-16.16s %(levelname)-8.8s %(funcName)-10.10s %(message)s',
    "format":	'%(asctime)s %(name)-16.16s %(message)s',
}

log_levelmap 			= {
    -2: logging.FATAL,
    -1: logging.ERROR,
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


def log_level( adjust ):
    """Return a logging level corresponding to the +'ve/-'ve adjustment"""
    return log_levelmap[
        max(
            min(
                adjust,
                max( log_levelmap.keys() )
            ),
            min( log_levelmap.keys() )
        )
    ]


#
# @util.memoize		-- Cache function results data based on positional args, and maxage/size
#
def memoize( maxsize=None, maxage=None, log_at=None ):
    """A very simple memoization wrapper based on (immutable) args only, for simplicity.  Any
    keyword arguments must be immaterial to the successful outcome, eg. timeout, API keys, etc..

    Only successful (non-Exception) outcomes are cached!

    Keeps track of the age (in seconds) and usage (count) of each entry, updating them on each call.
    When an entry exceeds maxage, it is refreshed.  If the memo dict exceeds maxsize entries, 10%
    are purged.

    Optionally logs when we memoize something, at level log_at.
    """
    def decorator( func ):
        @wraps( func )
        def wrapper( *args, **kwds ):
            now			= timer()
            # A 0 hits count is our sentinel indicating args not memo-ized
            last,hits		= wrapper._stat.get( args, (now,0) )
            if not hits or ( maxage and ( now - last > maxage )):
                entry = wrapper._memo[args] = func( *args, **kwds )
                if log_at and log.isEnabledFor( log_at ):
                    if hits:
                        log.log( log_at, "{} Refreshed {!r} == {!r}".format( wrapper.__name__, args, entry ))
                    else:
                        log.log( log_at, "{} Memoizing {!r} == {!r}".format( wrapper.__name__, args, entry ))
                last		= now
                hits		= 0
            else:
                entry		= wrapper._memo[args]
            hits	       += 1
            wrapper._stat[args] = (last,hits)

            if maxsize and len( wrapper._memo ) > maxsize:
                # Prune size, by ranking each entry by hits/age.  Sort w/ the highest rated keys
                # first, so we can just eject all those after 9/10ths of maxsize.
                rating		= sorted(
                    (
                        (hits / ( now - last + 1 ), key)		# Avoids hits/0
                        for key,(last,hits) in wrapper._stat.items()
                    ),
                    reverse	= True,
                )
                for rtg,key in rating[maxsize * 9 // 10:]:
                    del wrapper._stat[key]
                    del wrapper._memo[key]
            return entry

        def reset():
            """Flush all memoized data."""
            wrapper._memo	= dict()		# { args: entry, ... }
            wrapper._stat	= dict()		# { args: (<timestamp>, <count>), ... }

        wrapper.reset		= reset

        wrapper.reset()

        return wrapper

    return decorator


def commas( seq, final=None ):  # supply alternative final connector, eg. 'and', 'or'
    """Join a sequence w/ commas, optionally w/ a final connector, eg. 1, 2 and 3."""
    seq				= list( seq )
    if final and len( seq ) > 1:
        seq			= seq[:-2] + [f"{seq[-2]} {final} {seq[-1]}"]
    return ', '.join( map( str, seq ))


def into_bytes( data: Union[bytes,str] ) -> bytes:
    """Convert hex data w/ optional '0x' prefix into bytes"""
    if isinstance( data, (bytes,bytearray) ):
        return bytes( data )
    if data[:2].lower() == '0x':
        data		= data[2:]
    return bytes.fromhex( data )
