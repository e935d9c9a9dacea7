import math
import numpy as np
import pandas as pd
import pytest
from PhyNetTraits.NetworkParser import read_topology
from PhyNetTraits.PathMatrix import shared_path_matrix, get_heights, max_lambda
from PhyNetTraits.Settings import OptimizerSettings
from PhyNetTraits.Shifts import regressor_shift
from PhyNetTraits.Simulation import ParamsBM, simulate
from PhyNetTraits.PhyloRegression import *
from PhyNetTraits.test_network import NET1


################
### HELPERS ####
################

SIX = "(((A:1,B:1):1,(C:1.5,(D:0.5)#H1:0.5::0.7):0.5):1,\
((#H1:0.5::0.3,E:1):0.7,F:2):1.3);"

def simulated_data(newick : str = NET1, seed : int = 12) -> tuple:
    net = read_topology(newick)
    sim = simulate(net, ParamsBM(10, 1), np.random.default_rng(seed))
    return net, sim.get("Tips")

def data_frame(newick : str = SIX, seed : int = 3) -> tuple:
    net, y = simulated_data(newick, seed)
    rng = np.random.default_rng(seed + 1)
    x = rng.normal(size = len(y))
    df = pd.DataFrame({"trait" : y + 2 * x, "x" : x,
                       "tipNames" : net.tip_labels()})
    return net, df

def direct_gls(X, y, V):
    Vinv = np.linalg.inv(V)
    beta = np.linalg.solve(X.T @ Vinv @ X, X.T @ Vinv @ y)
    res = y - X @ beta
    n = len(y)
    sigma2 = res @ Vinv @ res / n
    ll = -0.5 * (n + n * math.log(2 * math.pi) + n * math.log(sigma2)
                 + math.log(np.linalg.det(V)))
    return beta, sigma2, ll

def all_statistics(fit):
    return np.concatenate([fit.coef(), [fit.loglikelihood(), fit.deviance(),
                                        fit.r2(), fit.aic(), fit.bic()]])

################
#### TESTS #####
################

def test_gls_closed_form():
    net, y = simulated_data()
    X = np.ones((4, 1))
    fit = phylo_network_lm(X, y, net)

    V = shared_path_matrix(net).get("Tips")
    beta, sigma2, ll = direct_gls(X, y, V)
    assert fit.coef() == pytest.approx(beta, rel = 1e-8)
    assert fit.sigma2_estim() == pytest.approx(sigma2, rel = 1e-8)
    assert fit.loglikelihood() == pytest.approx(ll, rel = 1e-8)
    assert fit.logdetVy == pytest.approx(math.log(np.linalg.det(V)),
                                         rel = 1e-8)
    np.testing.assert_allclose(fit.predict(), X @ beta)
    np.testing.assert_allclose(fit.residuals(), y - X @ beta, atol = 1e-10)
    np.testing.assert_allclose(fit.response(), y)

def test_gls_with_predictor():
    net, df = data_frame()
    X = np.column_stack([np.ones(len(df)), df["x"]])
    y = df["trait"].to_numpy()
    fit = phylo_network_lm(X, y, net)

    V = shared_path_matrix(net).get("Tips")
    beta, sigma2, ll = direct_gls(X, y, V)
    np.testing.assert_allclose(fit.coef(), beta, rtol = 1e-8)
    assert fit.loglikelihood() == pytest.approx(ll, rel = 1e-8)

    Vinv = np.linalg.inv(V)
    n, p = X.shape
    vcov_ref = sigma2 * n / (n - p) * np.linalg.inv(X.T @ Vinv @ X)
    np.testing.assert_allclose(fit.vcov(), vcov_ref, rtol = 1e-8)
    np.testing.assert_allclose(stderror(fit), np.sqrt(np.diag(vcov_ref)),
                               rtol = 1e-8)
    assert dof(fit) == 3
    assert dof_residual(fit) == n - 2
    assert nobs(fit) == n

def test_intercept_only_is_the_null_model():
    for seed in range(20):
        net, y = simulated_data(NET1, seed)
        fit = phylo_network_lm(np.ones((4, 1)), y, net)
        assert deviance(fit) == nulldeviance(fit)
        assert loglikelihood(fit) == nullloglikelihood(fit)
        assert r2(fit) == 0.0

def test_information_criteria():
    net, df = data_frame()
    fit = phylo_network_lm_df(df, "trait", "x", net)
    ll, k, n = fit.loglikelihood(), fit.dof(), fit.nobs()
    assert aic(fit) == pytest.approx(-2 * ll + 2 * k)
    assert aicc(fit) == pytest.approx(-2 * ll + 2 * k
                                      + 2 * k * (k + 1) / (n - k - 1))
    assert bic(fit) == pytest.approx(-2 * ll + k * math.log(n))
    assert adjr2(fit) == pytest.approx(1 - (1 - r2(fit)) * (n - 1)
                                       / (n - k + 1))
    assert 0 < r2(fit) <= 1

def test_confint_and_coeftable():
    net, df = data_frame()
    fit = phylo_network_lm_df(df, "trait", ["x"], net)
    table = coeftable(fit)
    assert list(table.index) == ["(Intercept)", "x"]
    assert list(table.columns) == ["Estimate", "Std. Error", "t value",
                                   "Pr(>|t|)", "Lower", "Upper"]
    np.testing.assert_allclose(table["Lower"], confint(fit)[:, 0])
    assert np.all(confint(fit, 0.99)[:, 0] < confint(fit, 0.9)[:, 0])
    assert np.all((table["Pr(>|t|)"] >= 0) & (table["Pr(>|t|)"] <= 1))
    assert fit.formula == "trait ~ 1 + x"
    assert "Coefficients" in str(fit)

def test_lambda_one_is_bm():
    net, df = data_frame()
    bm = phylo_network_lm_df(df, "trait", "x", net)
    lam = phylo_network_lm_df(df, "trait", "x", net, model = "lambda",
                              fixed_value = 1.0)
    np.testing.assert_allclose(all_statistics(lam)[:-2],
                               all_statistics(bm)[:-2], rtol = 1e-10)
    assert lam.dof() == bm.dof() + 1
    assert lambda_estim(lam) == 1.0
    assert not lam.lambda_estimated
    assert lam.nevals == 0

def assert_local_maximum(fit, df, net, model, lower, upper):
    """
    Moving the estimated parameter a little, within bounds, does not
    increase the likelihood.
    """
    for step in (-0.01, 0.01):
        lam = fit.lambda_estim() + step
        if lower < lam < upper:
            other = phylo_network_lm_df(df, "trait", "x", net, model = model,
                                        fixed_value = lam)
            assert fit.loglikelihood() >= other.loglikelihood() - 1e-8

def test_lambda_estimation():
    net, df = data_frame()
    fit = phylo_network_lm_df(df, "trait", "x", net, model = "lambda")
    assert fit.model == "lambda"
    assert fit.lambda_estimated
    assert fit.nevals > 0

    up = max_lambda(get_heights(net), shared_path_matrix(net))
    assert up == pytest.approx(3.3 / 2.0)
    assert 0 < fit.lambda_estim() <= up - up / 1000
    assert_local_maximum(fit, df, net, "lambda", 0, up - up / 1000)

    # The bounded search does not depend on a starting value
    again = phylo_network_lm_df(df, "trait", "x", net, model = "lambda",
                                start_value = 0.2)
    assert again.lambda_estim() == fit.lambda_estim()
    assert "Lambda" in fit.params_table()

def test_lambda_on_a_tree_warns():
    net, y = simulated_data("((A:1,B:1):1,(C:1,D:1):1);")
    with pytest.warns(UserWarning):
        fit = phylo_network_lm(np.ones((4, 1)), y, net, model = "lambda",
                               fixed_value = 0.5)
    assert fit.lambda_estim() == 0.5

def test_lambda_on_a_star():
    net, y = simulated_data("(A:1,B:2,C:1);")
    bm = phylo_network_lm(np.ones((3, 1)), y, net)
    with pytest.warns(UserWarning):
        fit = phylo_network_lm(np.ones((3, 1)), y, net, model = "lambda")
    assert 0 < fit.lambda_estim() <= 0.999
    assert fit.loglikelihood() == pytest.approx(bm.loglikelihood())

def test_scaling_hybrid():
    net, df = data_frame()
    bm = phylo_network_lm_df(df, "trait", "x", net)
    fixed = phylo_network_lm_df(df, "trait", "x", net,
                                model = "scalingHybrid", fixed_value = 1.0)
    assert fixed.loglikelihood() == pytest.approx(bm.loglikelihood())
    assert fixed.dof() == bm.dof() + 1

    fit = phylo_network_lm_df(df, "trait", "x", net, model = "scalingHybrid",
                              max_eval = 200)
    assert fit.lambda_estimated
    assert np.isfinite(fit.loglikelihood())
    assert_local_maximum(fit, df, net, "scalingHybrid", -np.inf, np.inf)

def test_reordered_rows():
    net, df = data_frame()
    fit = phylo_network_lm_df(df, "trait", "x", net)
    shuffled = df.sample(frac = 1, random_state = 4).reset_index(drop = True)
    other = phylo_network_lm_df(shuffled, "trait", "x", net)
    np.testing.assert_allclose(all_statistics(other), all_statistics(fit),
                               rtol = 1e-10)

def test_missing_tips():
    net, df = data_frame()
    df.loc[2, "trait"] = np.nan
    fit = phylo_network_lm_df(df, "trait", "x", net)
    assert fit.nobs() == len(df) - 1
    assert list(fit.msng) == [True, True, False, True, True, True]

    kept = df.dropna().iloc[::-1]
    other = phylo_network_lm_df(kept, "trait", "x", net)
    np.testing.assert_allclose(all_statistics(other), all_statistics(fit),
                               rtol = 1e-10)

    X = np.column_stack([np.ones(5), df["x"].drop(2)])
    direct = phylo_network_lm(X, df["trait"].drop(2).to_numpy(), net,
                              msng = fit.msng)
    np.testing.assert_allclose(all_statistics(direct), all_statistics(fit),
                               rtol = 1e-10)

def test_tip_matching_errors():
    net, df = data_frame()
    with pytest.raises(RegressionError):
        phylo_network_lm_df(df.drop(columns = "tipNames"), "trait", "x", net)
    with pytest.raises(RegressionError):
        phylo_network_lm_df(df.assign(tipNames = ["A"] * len(df)), "trait",
                            "x", net)
    with pytest.raises(RegressionError):
        phylo_network_lm_df(df.assign(tipNames = list("ABCDEZ")), "trait",
                            "x", net)
    with pytest.raises(RegressionError):
        phylo_network_lm_df(df, "trait", "nothing", net)

    with pytest.warns(UserWarning):
        fit = phylo_network_lm_df(df.drop(columns = "tipNames"), "trait",
                                  "x", net, no_names = True)
    assert fit.ind is None

def test_zero_column_design():
    net, y = simulated_data()
    fit = phylo_network_lm(np.zeros((4, 0)), y, net)
    assert len(fit.coef()) == 0
    np.testing.assert_allclose(fit.predict(), np.zeros(4))
    assert fit.dof() == 1
    assert list(fit.coeftable().columns) == ["Fixed Value"]
    with pytest.warns(UserWarning):
        assert mu_estim(fit) == 0.0

def test_mu_estim():
    net, df = data_frame()
    fit = phylo_network_lm_df(df, "trait", "x", net)
    assert mu_estim(fit) == fit.coef()[0]
    no_intercept = phylo_network_lm_df(df, "trait", "x", net,
                                       intercept = False)
    with pytest.raises(RegressionError):
        no_intercept.mu_estim()

def test_fit_errors():
    net, y = simulated_data()
    with pytest.raises(RegressionError):
        phylo_network_lm(np.ones((4, 1)), y, net, model = "OU")
    with pytest.raises(RegressionError):
        phylo_network_lm(np.ones((3, 1)), y, net)
    with pytest.raises(RegressionError):
        phylo_network_lm(np.ones((4, 1)), y, net, msng = [True, False])

    zero = read_topology("(A:0,B:0);")
    with pytest.raises(RegressionError):
        phylo_network_lm(np.ones((2, 1)), [1.0, 2.0], zero)

def test_anova():
    net, df = data_frame()
    df["shift"] = regressor_shift(net.has_node_numbered(-2), net)["shift_m2"]
    small = phylo_network_lm_df(df, "trait", [], net)
    medium = phylo_network_lm_df(df, "trait", ["x"], net)
    large = phylo_network_lm_df(df, "trait", ["x", "shift"], net)

    table = anova(small, medium, large)
    assert list(table.columns) == ["Res. Df", "RSS", "Df", "SS", "F",
                                   "Pr(>F)"]
    assert len(table) == 3
    assert math.isnan(table.loc[0, "F"])
    ss = small.deviance() - medium.deviance()
    F = ss / (medium.deviance() / medium.dof_residual())
    assert table.loc[1, "Df"] == 1
    assert table.loc[1, "F"] == pytest.approx(F)
    assert 0 <= table.loc[2, "Pr(>F)"] <= 1

    with pytest.raises(RegressionError):
        anova(medium, small)
    with pytest.raises(RegressionError):
        anova(small)

def test_settings():
    settings = OptimizerSettings()
    assert settings.max_eval == 1000
    assert settings.xtol_rel == 1e-10
    changed = settings.replace(max_eval = 10, xtol_abs = None)
    assert changed.max_eval == 10
    assert changed.xtol_abs == 1e-10
    with pytest.raises(TypeError):
        settings.replace(tolerance = 1)
    assert settings.converged([1.0, 1.0])
    assert not settings.converged([1.0, 2.0])
