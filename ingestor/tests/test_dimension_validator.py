import pytest

from infra.exceptions import FatalValidationError
from ingestor.adapters.memory import MemoryVectorIndex
from ingestor.app.dimension_validator import DimensionValidator
from ingestor.tests.fakes import DIMENSIONS, FakeDerivation


@pytest.mark.unit
class TestDimensionValidator:

    @pytest.mark.asyncio
    async def test_matching_dimensions(self):
        derivation = FakeDerivation()
        await DimensionValidator(DIMENSIONS, MemoryVectorIndex(DIMENSIONS), derivation).validate_dimensions()
        assert derivation.embed_calls == [["dimension check"]]

    @pytest.mark.asyncio
    async def test_unconstrained_index_without_model(self):
        await DimensionValidator(DIMENSIONS, MemoryVectorIndex()).validate_dimensions()

    @pytest.mark.asyncio
    async def test_table_mismatch(self):
        with pytest.raises(FatalValidationError, match="vector table"):
            await DimensionValidator(DIMENSIONS, MemoryVectorIndex(DIMENSIONS * 2)).validate_dimensions()

    @pytest.mark.asyncio
    async def test_model_mismatch(self):
        derivation = FakeDerivation(dimensions=DIMENSIONS + 4)
        with pytest.raises(FatalValidationError, match="model produces"):
            await DimensionValidator(DIMENSIONS, MemoryVectorIndex(), derivation).validate_dimensions()

    @pytest.mark.asyncio
    async def test_unreachable_model_is_tolerated(self):
        derivation = FakeDerivation(fail_embeddings=-1)
        await DimensionValidator(DIMENSIONS, MemoryVectorIndex(), derivation).validate_dimensions()
