import random
from datetime import datetime

from orderdesk.services.spk import SpkGenerator, highest_sequence, next_fallback_spk, spk_prefix

JAN_2025 = datetime(2025, 1, 15, 9, 30)


def make_generator(erp, sleeps, **kwargs):
    return SpkGenerator(
        erp,
        max_retries=2,
        retry_delay=2.0,
        sleep=sleeps.append,
        clock=lambda: JAN_2025,
        rng=random.Random(42),
        **kwargs,
    )


def test_prefix_is_month_and_year():
    assert spk_prefix(JAN_2025) == "0125"
    assert spk_prefix(datetime(2030, 11, 1)) == "1130"


def test_next_sequence_after_highest():
    assert next_fallback_spk(["0125001", "0125002"], "0125") == "0125003"
    assert next_fallback_spk(["0125002", "0125010", "1224999"], "0125") == "0125011"


def test_sequence_past_999_is_not_padded():
    assert next_fallback_spk(["0125999"], "0125") == "01251000"


def test_non_numeric_suffixes_are_ignored():
    assert highest_sequence(["0125abc", "0125", "0125007"], "0125") == 7
    assert highest_sequence(["1224001"], "0125") is None


def test_random_fallback_when_prefix_unknown():
    spk = next_fallback_spk(["1224005"], "0125", random.Random(1))
    assert len(spk) == 7
    assert spk.startswith("0125")
    assert 100 <= int(spk[4:]) <= 999


def test_server_spk_is_used(erp):
    sleeps = []
    result = make_generator(erp, sleeps).generate()
    assert result.spk == "1026001"
    assert result.source == "server"
    assert not result.provisional
    assert sleeps == []


def test_server_fallback_is_provisional(erp):
    erp.spk_response = {"spk": "1026900", "fallback": True}
    result = make_generator(erp, []).generate()
    assert result.source == "server_fallback"
    assert result.provisional
    assert result.notices[0].level == "warning"


def test_server_recovered_is_final(erp):
    erp.spk_response = {"spk": "1026002", "recovered": True}
    result = make_generator(erp, []).generate()
    assert result.source == "server_recovered"
    assert not result.provisional
    assert result.notices[0].level == "info"


def test_retries_then_falls_back_to_known_sequence(erp):
    erp.fail.add("generate_spk")
    erp.spks = ["0125001", "0125002"]
    sleeps = []
    result = make_generator(erp, sleeps).generate()

    assert erp.calls.count("generate_spk") == 3
    assert sleeps == [2.0, 2.0]
    assert result.spk == "0125003"
    assert result.source == "client_sequence"
    assert result.provisional
    assert result.notices[-1].message == "Failed to generate SPK number. Using temporary value."


def test_empty_server_answer_is_retried(erp):
    erp.spk_response = {"spk": ""}
    result = make_generator(erp, []).generate()
    assert erp.calls.count("generate_spk") == 3
    assert result.provisional


def test_fallback_reuses_spks_fetched_earlier(erp):
    erp.spks = ["0125041"]
    generator = make_generator(erp, [])
    assert generator.refresh_known_spks() == []

    erp.fail.update({"generate_spk", "list_spks"})
    result = generator.generate()
    assert result.spk == "0125042"
    assert erp.calls.count("list_spks") == 1
    assert [n.message for n in result.notices] == ["Failed to generate SPK number. Using temporary value."]


def test_failed_spk_list_is_reported_once(erp):
    erp.fail.update({"generate_spk", "list_spks"})
    generator = make_generator(erp, [])
    notices = generator.refresh_known_spks()
    result = generator.generate()
    messages = [n.message for n in notices + result.notices]
    assert messages.count("Failed to fetch SPK numbers") == 1
    assert result.provisional


def test_random_fallback_without_history(erp):
    erp.fail.add("generate_spk")
    erp.spks = []
    result = make_generator(erp, []).generate()
    assert result.source == "client_random"
    assert len(result.spk) == 7
    assert 100 <= int(result.spk[4:]) <= 999
