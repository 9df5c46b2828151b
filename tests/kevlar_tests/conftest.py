import sys
from pathlib import Path

import pytest

# Chain builders live beside the tests rather than in the package.
helpers = Path(__file__).parent / "helpers"
if helpers.exists():
    sys.path.insert(0, str(helpers))

from chain_factory import build_chain  # noqa: E402

from kevlar.lightclient.oracle import CommitteeSignatureOracle  # noqa: E402


@pytest.fixture
def oracle():
    return CommitteeSignatureOracle()


@pytest.fixture
def honest_chain():
    """Genesis at period 0, head at period 6, committees of four validators."""
    return build_chain(genesis_period=0, head_period=6, committee_size=4)
