# GitDesk test suite
