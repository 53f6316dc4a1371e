from webextract.core.models import JobError, JobStage, ResultSet
from webextract.flows.render import format_result


def _result(n):
    return ResultSet(
        job="hacker_news",
        url="https://news.ycombinator.com",
        field_names=["title", "link"],
        records=[{"title": f"t{i}", "link": f"https://x.org/{i}"} for i in range(n)],
    )


def test_fewer_records_than_limit_are_all_shown():
    text = format_result(_result(2), limit=5)
    assert text.splitlines()[0] == "hacker_news: found 2 records"
    assert "2. t1" in text
    assert "   link: https://x.org/1" in text


def test_limit_truncates_for_display_only():
    result = _result(8)
    text = format_result(result, limit=3)
    assert "(showing first 3)" in text
    assert "3. t2" in text
    assert "4. t3" not in text
    assert len(result.records) == 8


def test_error_is_rendered():
    result = ResultSet(
        job="quotes",
        url="http://quotes.toscrape.com",
        stage=JobStage.FAILED,
        job_error=JobError(
            stage=JobStage.FETCHING,
            kind="bad-status",
            message="status code error: 404 Not Found",
            status_code=404,
        ),
    )
    assert format_result(result) == "Error scraping quotes: status code error: 404 Not Found"


def test_record_with_missing_fields():
    result = ResultSet(job="j", url="https://x.org", field_names=["a", "b"], records=[{"b": "B"}, {}])
    lines = format_result(result).splitlines()
    assert lines[1] == "1. B"
    assert lines[2] == "2. (no values)"
