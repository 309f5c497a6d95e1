from discounts import get_registry


def test_generate_codes(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["generate-codes", "--category", "seasonal", "--count", "3", "--max-uses", "0"])
    assert result.exit_code == 0
    codes = [line.split("\t")[0] for line in result.output.strip().splitlines()]
    assert len(codes) == 3

    with app.app_context():
        for code in codes:
            created = get_registry().get(code)
            assert created.category == "seasonal"
            assert created.max_uses is None


def test_seed_and_sweep_commands(app):
    runner = app.test_cli_runner()
    assert "0 codes created" in runner.invoke(args=["seed-codes"]).output
    assert "0 codes deactivated" in runner.invoke(args=["sweep-codes"]).output
