from browser_client.assertions.service import (
	APIResponseAssertions,
	LocatorAssertions,
	PageAssertions,
	ResponseAssertions,
	expect,
	set_default_expect_timeout,
)

__all__ = [
	'expect',
	'set_default_expect_timeout',
	'PageAssertions',
	'LocatorAssertions',
	'ResponseAssertions',
	'APIResponseAssertions',
]
