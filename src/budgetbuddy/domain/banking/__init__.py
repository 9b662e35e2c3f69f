"""Banking bounded context: transactions as the bank reports them."""
