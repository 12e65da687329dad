"""Shared fixtures for DNS lookup tests."""

import asyncio
from dataclasses import replace

import dns.message
import dns.rcode
import dns.rdatatype
import dns.rrset
import pytest

from dns_lookup.types import LookupFailed


def build_response(qname, qtype, *rrsets, rcode=dns.rcode.NOERROR):
    """Build a response message.

    Each rrset is a tuple of (name, ttl, rdtype, *rdatas).
    """
    response = dns.message.make_response(dns.message.make_query(qname, qtype))
    for name, ttl, rdtype, *rdatas in rrsets:
        response.answer.append(dns.rrset.from_text(name, ttl, "IN", rdtype, *rdatas))
    response.set_rcode(rcode)
    return response


class FakeExecutor:
    """Query executor answering from a table keyed by (server, name).

    Values are response messages, error strings or exceptions to raise.
    Missing keys answer REFUSED.
    """

    def __init__(self, answers=None, delay=0.0):
        self.answers = answers or {}
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def query(self, server, name, rdtype, rdclass, options):
        self.calls.append((server.address, name, dns.rdatatype.to_text(rdtype)))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            result = self.answers.get((server.address, name), "REFUSED")
        finally:
            self.in_flight -= 1

        if isinstance(result, Exception):
            raise result
        if isinstance(result, str):
            return LookupFailed(message=result, server=server)
        if isinstance(result, LookupFailed):
            return replace(result, server=server)
        return result


@pytest.fixture
def make_response():
    return build_response


@pytest.fixture
def fake_executor():
    return FakeExecutor
